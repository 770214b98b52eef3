from datetime import date

from fastapi import APIRouter
from fastapi import HTTPException
from fastapi import Request

from streakify.api.schemas.users import ContributionItem
from streakify.api.schemas.users import ContributionsResponse
from streakify.api.schemas.users import ContributionSyncResponse
from streakify.api.schemas.users import NotificationHistoryResponse
from streakify.api.schemas.users import NotificationItem
from streakify.api.schemas.users import ReminderRequest
from streakify.api.schemas.users import ReminderResponse
from streakify.api.schemas.users import StreakStatsResponse
from streakify.api.schemas.users import TodayStatusResponse
from streakify.api.schemas.users import UserSettingsResponse
from streakify.api.schemas.users import UserSettingsUpdate
from streakify.clients.github_client import ContributionDay
from streakify.core.errors import ConfigurationError
from streakify.services.contributions import FailureKind
from streakify.services.contributions import FetchFailure
from streakify.services.escalation import recent_window
from streakify.services.local_time import local_today
from streakify.services.messages import friendly_email
from streakify.services.messages import urgent_email
from streakify.services.notification_log import NotificationType
from streakify.services.streak_service import calculate_streak_stats
from streakify.services.streak_service import counts_by_date
from streakify.services.streak_service import has_activity_on
from streakify.services.user_directory import UserRecord


router = APIRouter(prefix="/users/{user_id}")

# Manual syncs store about a month of days.
MANUAL_SYNC_DAYS = 30


def _load_user(request: Request, user_id: str) -> UserRecord:
    user = request.app.state.services.directory.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="user not found")
    return user


def _fetch_days(request: Request, user: UserRecord) -> list[ContributionDay]:
    result = request.app.state.services.contributions.fetch(
        user.handle, user.credential
    )
    if isinstance(result, FetchFailure):
        if result.kind is FailureKind.INVALID_CREDENTIAL:
            raise HTTPException(status_code=401, detail="GitHub token is invalid")
        if result.kind is FailureKind.CONFIGURATION:
            raise HTTPException(status_code=500, detail="GitHub token is not set")
        raise HTTPException(status_code=502, detail="GitHub API request failed")
    return result.days


def _user_today(user: UserRecord) -> date:
    try:
        return local_today(user.timezone)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get("/stats")
def get_streak_stats(user_id: str, request: Request) -> StreakStatsResponse:
    """Return streak statistics computed from the live contribution calendar."""

    user = _load_user(request, user_id)
    today = _user_today(user)
    days = _fetch_days(request, user)
    notification_log = request.app.state.services.notification_log
    saved_days = notification_log.count_saved_days(user.id)

    stats = calculate_streak_stats(days, saved_days_count=saved_days, today=today)
    return StreakStatsResponse(
        username=user.handle,
        date=today,
        current_streak=stats.current_streak,
        longest_streak=stats.longest_streak,
        total_this_month=stats.total_this_month,
        total_this_year=stats.total_this_year,
        saved_days=stats.saved_days,
    )


@router.get("/contributions/today")
def get_today_status(user_id: str, request: Request) -> TodayStatusResponse:
    user = _load_user(request, user_id)
    today = _user_today(user)
    days = _fetch_days(request, user)
    return TodayStatusResponse(
        date=today, has_contributed=has_activity_on(days, today)
    )


@router.get("/notifications")
def get_notification_history(
    user_id: str, request: Request
) -> NotificationHistoryResponse:
    user = _load_user(request, user_id)
    entries = request.app.state.services.notification_log.history(user.id)
    return NotificationHistoryResponse(
        notifications=[NotificationItem.model_validate(entry) for entry in entries]
    )


@router.patch("/settings")
def update_user_settings(
    user_id: str, payload: UserSettingsUpdate, request: Request
) -> UserSettingsResponse:
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    directory = request.app.state.services.directory
    try:
        user = directory.update_settings(user_id, changes)
    except ConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if user is None:
        raise HTTPException(status_code=404, detail="user not found")

    return UserSettingsResponse(
        id=user.id,
        github_username=user.handle,
        check_time=user.check_time,
        timezone=user.timezone,
        email=user.contact_email,
        telegram_linked=user.contact_chat_id is not None,
    )


@router.get("/contributions")
def get_contributions(user_id: str, request: Request) -> ContributionsResponse:
    user = _load_user(request, user_id)
    counts = counts_by_date(_fetch_days(request, user))
    return ContributionsResponse(
        contributions=[
            ContributionItem(date=day, count=count)
            for day, count in sorted(counts.items())
        ],
        total=sum(counts.values()),
    )


@router.post("/contributions/sync")
def sync_contributions(user_id: str, request: Request) -> ContributionSyncResponse:
    """Store the most recent days of the live calendar for the user."""

    user = _load_user(request, user_id)
    days = _fetch_days(request, user)
    synced = request.app.state.services.directory.save_contributions(
        user.id, recent_window(days, MANUAL_SYNC_DAYS)
    )
    return ContributionSyncResponse(
        message="Contributions synced successfully", synced_days=synced
    )


@router.post("/notifications/send-reminder")
def send_reminder(
    user_id: str, request: Request, payload: ReminderRequest | None = None
) -> ReminderResponse:
    """Email a reminder right away, outside the daily escalation."""

    user = _load_user(request, user_id)
    if not user.contact_email:
        raise HTTPException(status_code=400, detail="User has no email address")

    today = _user_today(user)
    stats = calculate_streak_stats(_fetch_days(request, user), today=today)
    if payload is not None and payload.type == "urgent":
        email = urgent_email(user.handle, stats.current_streak)
    else:
        email = friendly_email(user.handle, stats.current_streak)

    services = request.app.state.services
    sent = services.notifier.send_email(user.contact_email, email.subject, email.body)
    if sent:
        services.notification_log.append(user.id, NotificationType.EMAIL, today)

    return ReminderResponse(
        success=sent,
        sent_to=user.contact_email,
        current_streak=stats.current_streak,
    )
