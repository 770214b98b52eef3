import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta

from fastapi import FastAPI
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from streakify.api.routes.health import router as health_router
from streakify.api.routes.telegram import router as telegram_router
from streakify.api.routes.users import router as users_router
from streakify.clients.email_client import ResendEmailClient
from streakify.clients.telegram_client import TelegramClient
from streakify.core.errors import ConfigurationError
from streakify.core.observability import configure_logging
from streakify.core.observability import init_sentry
from streakify.db import Base
from streakify.db import create_db_engine
from streakify.db import create_session_factory
from streakify.db import get_database_url
from streakify.scheduler import build_scheduler
from streakify.services.contributions import ContributionSource
from streakify.services.escalation import EscalationScheduler
from streakify.services.escalation_state import InMemoryEscalationStateStore
from streakify.services.link_codes import InMemoryLinkCodeStore
from streakify.services.link_codes import LinkCodeRegistry
from streakify.services.link_codes import LinkCodeStore
from streakify.services.link_codes import SqlLinkCodeStore
from streakify.services.notification_log import NotificationLog
from streakify.services.notifier import Notifier
from streakify.services.telegram_bot import TelegramBot
from streakify.services.user_directory import UserDirectory
from streakify.settings import Settings


logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Collaborators shared by the routes and the background jobs."""

    settings: Settings
    directory: UserDirectory
    contributions: ContributionSource
    notifier: Notifier
    notification_log: NotificationLog
    link_codes: LinkCodeRegistry
    escalation: EscalationScheduler
    bot: TelegramBot


def _link_code_store(
    settings: Settings, session_factory: sessionmaker[Session]
) -> LinkCodeStore:
    if settings.link_code_backend == "memory":
        return InMemoryLinkCodeStore()
    if settings.link_code_backend == "database":
        return SqlLinkCodeStore(session_factory)
    raise ConfigurationError(
        f"unknown LINK_CODE_BACKEND {settings.link_code_backend!r}"
    )


def build_services(
    settings: Settings, session_factory: sessionmaker[Session]
) -> AppServices:
    directory = UserDirectory(session_factory)
    contributions = ContributionSource(
        graphql_url=settings.github_graphql_url,
        default_token=settings.github_token,
        timeout=settings.http_timeout_seconds,
    )
    notifier = Notifier(
        email_client=ResendEmailClient(
            api_key=settings.resend_api_key,
            from_email=settings.from_email,
            api_url=settings.resend_api_url,
            timeout=settings.http_timeout_seconds,
        ),
        telegram_client=TelegramClient(
            token=settings.telegram_bot_token,
            api_base_url=settings.telegram_api_base_url,
            timeout=settings.http_timeout_seconds,
        ),
    )
    notification_log = NotificationLog(session_factory)
    link_codes = LinkCodeRegistry(
        store=_link_code_store(settings, session_factory),
        ttl=timedelta(minutes=settings.link_code_ttl_minutes),
    )
    escalation = EscalationScheduler(
        directory=directory,
        contributions=contributions,
        notifier=notifier,
        notification_log=notification_log,
        state=InMemoryEscalationStateStore(),
        link_codes=link_codes,
        reference_timezone=settings.reference_timezone,
        sync_window_days=settings.sync_window_days,
        max_workers=settings.scheduler_max_workers,
    )
    return AppServices(
        settings=settings,
        directory=directory,
        contributions=contributions,
        notifier=notifier,
        notification_log=notification_log,
        link_codes=link_codes,
        escalation=escalation,
        bot=TelegramBot(link_codes=link_codes, directory=directory, notifier=notifier),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application and wire its collaborators."""

    app_settings = settings or Settings()
    configure_logging(app_settings.log_level)
    init_sentry(app_settings)

    engine = create_db_engine(get_database_url(app_settings))
    session_factory = create_session_factory(engine)
    services = build_services(app_settings, session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler = None
        if app_settings.scheduler_enabled:
            scheduler = build_scheduler(services.escalation, app_settings)
            scheduler.start()
            logger.info(
                "Escalation jobs scheduled in %s", app_settings.reference_timezone
            )
        else:
            logger.info("Scheduler disabled via settings (SCHEDULER_ENABLED=false)")
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            engine.dispose()

    app = FastAPI(title="Streakify", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.services = services

    if engine.url.get_backend_name() == "sqlite":
        Base.metadata.create_all(bind=engine)

    app.include_router(health_router)
    app.include_router(telegram_router)
    app.include_router(users_router)
    return app
