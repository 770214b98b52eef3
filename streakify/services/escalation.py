"""Daily reminder escalation.

Each user moves through at most three stages per local day:

    idle -> friendly_reminder_sent -> urgent_reminder_sent

The friendly reminder goes out at the user's own ``check_time``, the urgent
one at a fixed cutoff in the reference timezone. Shortly after the reference
midnight the boundary sync records "streak saved" events for users who were
nudged and then contributed, and resets everybody to idle. A stage left over
from an earlier local day counts as idle, so a late sync never blocks the
next day's reminders.

Every ``run_*`` method takes the current time so that a test can drive the
triggers by hand.
"""

import logging
from collections.abc import Callable
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from datetime import datetime
from threading import Lock
from typing import Protocol

from streakify.clients.github_client import ContributionDay
from streakify.core.errors import ConfigurationError
from streakify.core.errors import TransientExternalFailure
from streakify.services.contributions import ContributionSource
from streakify.services.contributions import FailureKind
from streakify.services.contributions import FetchFailure
from streakify.services.escalation_state import EscalationEntry
from streakify.services.escalation_state import EscalationStage
from streakify.services.escalation_state import EscalationStateStore
from streakify.services.link_codes import LinkCodeRegistry
from streakify.services.local_time import parse_clock_time
from streakify.services.local_time import resolve_timezone
from streakify.services.messages import friendly_chat
from streakify.services.messages import friendly_email
from streakify.services.messages import saved_chat
from streakify.services.messages import saved_email
from streakify.services.messages import urgent_chat
from streakify.services.notification_log import NotificationType
from streakify.services.notifier import Notifier
from streakify.services.streak_service import calculate_streak_stats
from streakify.services.streak_service import counts_by_date
from streakify.services.streak_service import has_activity_on
from streakify.services.user_directory import UserRecord


logger = logging.getLogger(__name__)


class Directory(Protocol):
    def list_users(self) -> list[UserRecord]: ...

    def save_contributions(self, user_id: str, days: list[ContributionDay]) -> int: ...


class NotificationSink(Protocol):
    def append(self, user_id: str, type: NotificationType, day: date) -> None: ...


def recent_window(days: Iterable[ContributionDay], size: int) -> list[ContributionDay]:
    counts = counts_by_date(days)
    recent = sorted(counts.items())[-size:] if size > 0 else []
    return [ContributionDay(date=day, count=count) for day, count in recent]


class EscalationScheduler:
    def __init__(
        self,
        directory: Directory,
        contributions: ContributionSource,
        notifier: Notifier,
        notification_log: NotificationSink,
        state: EscalationStateStore,
        link_codes: LinkCodeRegistry,
        reference_timezone: str = "Asia/Kolkata",
        sync_window_days: int = 7,
        max_workers: int = 1,
    ) -> None:
        self.directory = directory
        self.contributions = contributions
        self.notifier = notifier
        self.notification_log = notification_log
        self.state = state
        self.link_codes = link_codes
        self.reference_zone = resolve_timezone(reference_timezone)
        self.sync_window_days = sync_window_days
        self.max_workers = max(1, max_workers)
        self._user_locks: dict[str, Lock] = {}
        self._user_locks_guard = Lock()
        self._config_warnings: set[tuple[str, str, str]] = set()

    # Triggers ---------------------------------------------------------
    def run_due_check(self, now: datetime) -> int:
        """Send the friendly reminder to users whose check time is now."""

        return self._for_each_user(
            "due_check", lambda user: self._friendly_reminder(user, now)
        )

    def run_urgent_check(self, now: datetime) -> int:
        """Send the last-hour chat nudge to every user still without activity."""

        return self._for_each_user(
            "urgent_check", lambda user: self._urgent_reminder(user, now)
        )

    def run_boundary_sync(self, now: datetime) -> int:
        """Persist recent days, record saved streaks and reset the day."""

        saved = self._for_each_user("boundary_sync", self._sync_user)
        self.state.reset_day()
        with self._user_locks_guard:
            self._config_warnings.clear()
        logger.info(
            "Boundary sync at %s: %d streak(s) saved, escalation state reset",
            now.astimezone(self.reference_zone).isoformat(),
            saved,
        )
        return saved

    def run_cleanup(self, now: datetime) -> int:
        try:
            removed = self.link_codes.purge_expired(now)
        except Exception:
            logger.exception("Link code cleanup failed")
            return 0
        logger.info("Removed %d expired link code(s)", removed)
        return removed

    # Per-user work ----------------------------------------------------
    def _friendly_reminder(self, user: UserRecord, now: datetime) -> bool:
        local_now = now.astimezone(resolve_timezone(user.timezone))
        if (local_now.hour, local_now.minute) != parse_clock_time(user.check_time):
            return False
        today = local_now.date()

        with self._lock_for(user.id):
            entry = self.state.get(user.id)
            if entry.stage is not EscalationStage.IDLE and entry.day == today:
                return False

            days = self._fetch_days(user)
            self._settle_previous_day(user, entry, today, days)
            if has_activity_on(days, today):
                logger.info("User %s already contributed on %s", user.id, today)
                return False

            stats = calculate_streak_stats(days, today=today)
            delivered = False

            if user.contact_email and not self.state.was_emailed(user.id, today):
                email = friendly_email(user.handle, stats.current_streak)
                sent = self.notifier.send_email(
                    user.contact_email, email.subject, email.body
                )
                if sent:
                    self.state.mark_emailed(user.id, today)
                    self.notification_log.append(user.id, NotificationType.EMAIL, today)
                    delivered = True

            if user.contact_chat_id:
                text = friendly_chat(user.handle, stats.current_streak)
                if self.notifier.send_chat(user.contact_chat_id, text):
                    self.notification_log.append(user.id, NotificationType.CHAT, today)
                    delivered = True

            self.state.set(user.id, EscalationStage.FRIENDLY_REMINDER_SENT, today)
            logger.info(
                "Friendly reminder for user %s on %s (delivered=%s)",
                user.id,
                today,
                delivered,
            )
            return delivered

    def _urgent_reminder(self, user: UserRecord, now: datetime) -> bool:
        today = now.astimezone(resolve_timezone(user.timezone)).date()

        with self._lock_for(user.id):
            entry = self.state.get(user.id)
            if (
                entry.stage is EscalationStage.URGENT_REMINDER_SENT
                and entry.day == today
            ):
                return False

            days = self._fetch_days(user)
            self._settle_previous_day(user, entry, today, days)
            if has_activity_on(days, today):
                return False

            # Urgent nudges are chat only; users without a chat still
            # transition so the boundary sync can record a saved streak.
            sent = False
            if user.contact_chat_id:
                sent = self.notifier.send_chat(
                    user.contact_chat_id, urgent_chat(user.handle)
                )
                if sent:
                    self.notification_log.append(user.id, NotificationType.CHAT, today)

            self.state.set(user.id, EscalationStage.URGENT_REMINDER_SENT, today)
            logger.info(
                "Urgent reminder for user %s on %s (sent=%s)", user.id, today, sent
            )
            return sent

    def _sync_user(self, user: UserRecord) -> bool:
        days = self._fetch_days(user)
        self.directory.save_contributions(
            user.id, recent_window(days, self.sync_window_days)
        )

        with self._lock_for(user.id):
            entry = self.state.get(user.id)
            if entry.stage is not EscalationStage.URGENT_REMINDER_SENT:
                return False
            if entry.day is None or not has_activity_on(days, entry.day):
                return False

            self._record_saved(user, entry.day, days)
            self.state.set(user.id, EscalationStage.IDLE, entry.day)
            return True

    def _settle_previous_day(
        self,
        user: UserRecord,
        entry: EscalationEntry,
        today: date,
        days: list[ContributionDay],
    ) -> None:
        """Close out an escalation left over from an earlier local day."""

        if entry.stage is EscalationStage.IDLE or entry.day == today:
            return
        if (
            entry.stage is EscalationStage.URGENT_REMINDER_SENT
            and entry.day is not None
            and has_activity_on(days, entry.day)
        ):
            self._record_saved(user, entry.day, days)
        self.state.set(user.id, EscalationStage.IDLE, today)

    def _record_saved(
        self, user: UserRecord, day: date, days: list[ContributionDay]
    ) -> None:
        stats = calculate_streak_stats(days, today=day)
        if user.contact_chat_id:
            self.notifier.send_chat(
                user.contact_chat_id, saved_chat(user.handle, stats.current_streak)
            )
        elif user.contact_email:
            email = saved_email(user.handle, stats.current_streak)
            self.notifier.send_email(user.contact_email, email.subject, email.body)

        self.notification_log.append(user.id, NotificationType.STREAK_SAVED, day)
        logger.info("Streak saved for user %s on %s", user.id, day)

    # Helpers ----------------------------------------------------------
    def _fetch_days(self, user: UserRecord) -> list[ContributionDay]:
        result = self.contributions.fetch(user.handle, user.credential)
        if isinstance(result, FetchFailure):
            if result.kind is FailureKind.CONFIGURATION:
                raise ConfigurationError(result.detail)
            raise TransientExternalFailure(result.detail)
        return result.days

    def _lock_for(self, user_id: str) -> Lock:
        with self._user_locks_guard:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = self._user_locks[user_id] = Lock()
            return lock

    def _warn_misconfigured(
        self, job: str, user: UserRecord, exc: ConfigurationError
    ) -> None:
        # Warn once per job, user and problem until the next boundary sync.
        key = (job, user.id, str(exc))
        with self._user_locks_guard:
            repeated = key in self._config_warnings
            self._config_warnings.add(key)
        if repeated:
            logger.debug("%s: skipping user %s: %s", job, user.id, exc)
        else:
            logger.warning("%s: skipping user %s: %s", job, user.id, exc)

    def _for_each_user(
        self, job: str, handler: Callable[[UserRecord], bool]
    ) -> int:
        try:
            users = self.directory.list_users()
        except Exception:
            logger.exception("%s: could not load users", job)
            return 0

        def run(user: UserRecord) -> bool:
            try:
                return handler(user)
            except ConfigurationError as exc:
                self._warn_misconfigured(job, user, exc)
            except TransientExternalFailure as exc:
                logger.warning(
                    "%s: external failure for user %s: %s", job, user.id, exc
                )
            except Exception:
                logger.exception("%s: failed for user %s", job, user.id)
            return False

        if self.max_workers == 1 or len(users) <= 1:
            results = [run(user) for user in users]
        else:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix=job
            ) as pool:
                results = list(pool.map(run, users))

        return sum(results)
