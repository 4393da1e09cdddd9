"""Decide which date range to request next for a package.

Stored history for a package is always a contiguous run of days. Each fetch
cycle either extends it forward toward the most recent published day, or,
once it is close enough to the present, extends it backward toward the
registry epoch. Backward probing stops after a long run of days the upstream
reported as unavailable.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from .types import DailyStatistic

logger = logging.getLogger("pkghist")

# First day the npm registry has download counts for
NPM_EPOCH = date(2009, 9, 29)

# Sentinel download count for days the upstream has no data for
UNAVAILABLE = -1

# Stop backfilling once this many leading days are unavailable
MAX_MISSING_PREFIX = 180

# Upstream counts for a UTC day are published shortly after it ends;
# before this hour we assume yesterday's counts are not out yet.
PUBLICATION_HOUR_UTC = 6


@dataclass(frozen=True)
class RangePolicy:
    """Range sizes, in days, for one kind of request.

    Attributes:
        min_gap_days: Forward-fill only once the stored history is at least
            this many days behind the freshest available day.
        max_span_days: Maximum number of days requested at once.
    """

    min_gap_days: int
    max_span_days: int

    def __post_init__(self) -> None:
        if self.min_gap_days < 1 or self.max_span_days < 1:
            raise ValueError("Range policy days must be positive")
        if self.min_gap_days > self.max_span_days:
            raise ValueError(
                f"min_gap_days ({self.min_gap_days}) exceeds "
                f"max_span_days ({self.max_span_days})"
            )


def freshest_available_day(now: datetime | None = None) -> date:
    """Return the most recent day the upstream is expected to have counts for."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)

    freshest = now.date() - timedelta(days=1)
    if now.hour < PUBLICATION_HOUR_UTC:
        freshest -= timedelta(days=1)
    return freshest


def count_missing_prefix(statistics: list[DailyStatistic]) -> int:
    """Count the leading statistics whose downloads are unavailable."""
    missing = 0
    for statistic in statistics:
        if statistic["downloads"] != UNAVAILABLE:
            break
        missing += 1
    return missing


def decide_next_range(
    existing: list[DailyStatistic],
    min_gap_days: int,
    max_span_days: int,
    now: datetime | None = None,
    epoch: date = NPM_EPOCH,
) -> tuple[date, date] | None:
    """Decide the next inclusive (start, end) range to fetch.

    Args:
        existing: Stored statistics for the package, sorted ascending by day.
        min_gap_days: Minimum staleness, in days, that triggers a forward fill.
        max_span_days: Maximum number of days in the returned range.
        now: Current time (UTC). Defaults to the system clock.
        epoch: Day before the first day the upstream has counts for; an
            empty history is filled forward from the day after it.

    Returns:
        The range to request, or None if nothing more should be fetched.
    """
    policy = RangePolicy(min_gap_days, max_span_days)

    freshest = freshest_available_day(now)
    latest = existing[-1]["day"] if existing else epoch

    if (freshest - latest).days >= policy.min_gap_days:
        start = latest + timedelta(days=1)
        end = min(start + timedelta(days=policy.max_span_days - 1), freshest)
        return start, end

    if not existing:
        return None

    missing = count_missing_prefix(existing)
    if missing > MAX_MISSING_PREFIX:
        logger.debug("Backlog exhausted after %d unavailable days", missing)
        return None

    end = existing[0]["day"] - timedelta(days=1)
    start = end - timedelta(days=policy.max_span_days - 1)
    return start, end
