from datetime import date
from datetime import datetime
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class StreakStatsResponse(BaseModel):
    """Streak statistics for the user's local today."""

    username: str
    date: date
    current_streak: int
    longest_streak: int
    total_this_month: int
    total_this_year: int
    saved_days: int


class TodayStatusResponse(BaseModel):
    date: date
    has_contributed: bool


class NotificationItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    day: date
    sent_at: datetime


class NotificationHistoryResponse(BaseModel):
    notifications: list[NotificationItem]


class LinkCodeResponse(BaseModel):
    """Code the user sends to the bot to link their Telegram chat."""

    code: str
    expires_in_minutes: int
    instructions: str


class UserSettingsUpdate(BaseModel):
    check_time: str | None = Field(default=None, max_length=8)
    timezone: str | None = Field(default=None, max_length=64)
    email: str | None = Field(default=None, max_length=320)


class UserSettingsResponse(BaseModel):
    id: str
    github_username: str
    check_time: str
    timezone: str
    email: str | None
    telegram_linked: bool


class ContributionItem(BaseModel):
    date: date
    count: int


class ContributionsResponse(BaseModel):
    contributions: list[ContributionItem]
    total: int


class ContributionSyncResponse(BaseModel):
    message: str
    synced_days: int


class ReminderRequest(BaseModel):
    type: Literal["friendly", "urgent"] = "friendly"


class ReminderResponse(BaseModel):
    success: bool
    sent_to: str
    current_streak: int
