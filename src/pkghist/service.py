"""Fetch cycle: bring a package's stored history one range closer to complete."""

import logging
from datetime import date, datetime

from .normalize import normalize_range
from .reconcile import RangePolicy, decide_next_range
from .types import DailyStatistic, StatisticStore, Upstream

logger = logging.getLogger("pkghist")


def get_package_statistics(
    store: StatisticStore,
    upstream: Upstream,
    name: str,
    policy: RangePolicy,
    now: datetime | None = None,
) -> list[DailyStatistic]:
    """Fetch the next missing range for a package and return its full history.

    At most one upstream request is made. The fetched range is only written
    once it has been completely normalized, so a failed fetch leaves the
    stored history untouched.

    Args:
        store: Statistic store holding the package history.
        upstream: Source of download counts.
        name: Package name; empty for the all-packages aggregate.
        policy: Range sizes to use for this request.
        now: Current time (UTC). Defaults to the system clock.

    Returns:
        Every stored statistic for the package, sorted ascending by day.
    """
    package = store.find_or_create_package(name)
    existing = store.get_statistics(package["id"])

    needed = decide_next_range(
        existing,
        policy.min_gap_days,
        policy.max_span_days,
        now=now,
        epoch=upstream.earliest_day(now),
    )
    if needed is None:
        logger.debug('Not fetching any more data for "%s"', name)
        return existing

    start, end = needed
    response = upstream.fetch_range(name, start, end)
    fetched = normalize_range(response, start, end)

    inserted = store.insert_statistics(package["id"], fetched)
    logger.info(
        'Stored %d days for "%s" (%s to %s)', inserted, name, start, end
    )

    return sorted(existing + fetched, key=lambda s: s["day"])


def query_average_downloads(store: StatisticStore, start: date, end: date) -> dict[str, int]:
    """Average available daily downloads per package for days in [start, end).

    Unavailable (-1) days are excluded. Results are ordered by package name.
    """
    if start > end:
        raise ValueError(f"Start date {start} is after end date {end}")
    averages = store.average_downloads(start, end)
    logger.info("Averaged downloads for %d packages", len(averages))
    return averages
