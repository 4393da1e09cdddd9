"""Turn sparse upstream range responses into dense per-day statistics."""

import logging
from datetime import date

from .api import NO_STATS_ERROR, UpstreamError
from .reconcile import UNAVAILABLE
from .types import DailyStatistic, RangeResponse
from .utils import iter_days

logger = logging.getLogger("pkghist")


def normalize_range(
    response: RangeResponse, start: date, end: date
) -> list[DailyStatistic]:
    """Build one statistic per day in [start, end] from an upstream response.

    Days missing from a successful response count as zero downloads. A
    "no stats for this range" error marks every day as unavailable (-1).

    Raises:
        UpstreamError: If the response carries any other error.
        ValueError: If start is after end.
    """
    if start > end:
        raise ValueError(f"Range start {start} is after end {end}")

    default = 0
    reported: dict[str, int] = {}

    error = response.get("error")
    if error:
        if error != NO_STATS_ERROR:
            raise UpstreamError(error)
        logger.debug("No stats between %s and %s, marking days unavailable", start, end)
        default = UNAVAILABLE
    else:
        for item in response.get("downloads", []):
            reported[item["day"]] = int(item["downloads"])

    return [
        {"day": day, "downloads": reported.get(day.isoformat(), default)}
        for day in iter_days(start, end)
    ]
