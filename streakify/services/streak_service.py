from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from datetime import timedelta

from streakify.clients.github_client import ContributionDay


ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class StreakStats:
    current_streak: int
    longest_streak: int
    total_this_month: int
    total_this_year: int
    saved_days: int


def counts_by_date(days: Iterable[ContributionDay]) -> dict[date, int]:
    """Collapse days into a date -> count map; a repeated date keeps its last value."""

    counts: dict[date, int] = {}
    for day in days:
        counts[day.date] = day.count
    return counts


def has_activity_on(days: Iterable[ContributionDay], day: date) -> bool:
    return counts_by_date(days).get(day, 0) > 0


def count_consecutive_days(counts: dict[date, int], start: date) -> int:
    """Count contributing days walking backward from `start` inclusive."""

    streak = 0
    check_day = start
    while counts.get(check_day, 0) > 0:
        streak += 1
        check_day -= ONE_DAY
    return streak


def longest_streak(counts: dict[date, int]) -> int:
    longest = 0
    current = 0
    previous: date | None = None

    for day in sorted(counts):
        if counts[day] <= 0:
            current = 0
            previous = None
            continue

        if previous is not None and day - previous == ONE_DAY:
            current += 1
        else:
            current = 1

        longest = max(longest, current)
        previous = day

    return longest


def calculate_streak_stats(
    days: list[ContributionDay],
    saved_days_count: int = 0,
    today: date | None = None,
) -> StreakStats:
    """Compute streak statistics from a contribution calendar.

    `today` is the caller's local date; the calculation only compares date
    keys. When today has no contribution yet the streak is still counted from
    yesterday, since the day is not over.
    """

    if not days:
        return StreakStats(
            current_streak=0,
            longest_streak=0,
            total_this_month=0,
            total_this_year=0,
            saved_days=saved_days_count,
        )

    today = today or date.today()
    counts = counts_by_date(days)

    if counts.get(today, 0) > 0:
        current = count_consecutive_days(counts, today)
    else:
        current = count_consecutive_days(counts, today - ONE_DAY)

    total_this_month = sum(
        count
        for day, count in counts.items()
        if day.year == today.year and day.month == today.month
    )
    total_this_year = sum(
        count for day, count in counts.items() if day.year == today.year
    )

    return StreakStats(
        current_streak=current,
        longest_streak=longest_streak(counts),
        total_this_month=total_this_month,
        total_this_year=total_this_year,
        saved_days=saved_days_count,
    )
