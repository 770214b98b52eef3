from dataclasses import dataclass
from html import escape


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    body: str


def friendly_email(handle: str, current_streak: int) -> EmailMessage:
    name = escape(handle)
    if current_streak > 0:
        streak_line = f"You are on a <b>{current_streak}-day</b> streak."
    else:
        streak_line = "Today is a good day to start a new streak."
    return EmailMessage(
        subject=f"Don't forget to contribute today, {handle}!",
        body=(
            f"<p>Hey {name},</p>"
            "<p>You haven't made a GitHub contribution today yet.</p>"
            f"<p>{streak_line}</p>"
            "<p>A single commit keeps it alive.</p>"
            "<p>Streakify</p>"
        ),
    )


def urgent_email(handle: str, current_streak: int) -> EmailMessage:
    name = escape(handle)
    return EmailMessage(
        subject=f"Last call, {handle}: your streak ends tonight",
        body=(
            f"<p>{name}, there is about an hour left today.</p>"
            f"<p>Your <b>{current_streak}-day</b> streak needs one more"
            " contribution before midnight.</p>"
            "<p>Streakify</p>"
        ),
    )


def saved_email(handle: str, current_streak: int) -> EmailMessage:
    return EmailMessage(
        subject=f"Streak saved, {handle}!",
        body=(
            f"<p>Nice work, {escape(handle)}!</p>"
            "<p>You made it in time and your streak is still alive"
            f" at <b>{current_streak} days</b>.</p>"
            "<p>Streakify</p>"
        ),
    )


def friendly_chat(handle: str, current_streak: int) -> str:
    text = (
        f"⚠️ Hey {escape(handle)}! You haven't contributed today. "
        "Don't break your streak!"
    )
    if current_streak > 0:
        text += f"\n\nCurrent streak: <b>{current_streak}</b> days 🔥"
    return text


def urgent_chat(handle: str) -> str:
    return (
        f"🚨 URGENT: Only 1 hour left! {escape(handle)}, make a commit NOW "
        "or lose your streak!"
    )


def saved_chat(handle: str, current_streak: int) -> str:
    return (
        f"🎉 Streak saved, {escape(handle)}! "
        f"You're now at <b>{current_streak}</b> days. Keep it going!"
    )
