"""Upstream download statistics clients.

Each client implements ``fetch_range(name, start, end)`` and returns the raw,
possibly sparse, per-day counts for the inclusive range. Errors reported in
the response body are passed through for the normalizer to classify.
"""

import json
import logging
from datetime import date, datetime, timedelta
from urllib.parse import quote

import pypistats  # type: ignore[import-untyped]
import requests

from .reconcile import NPM_EPOCH, freshest_available_day
from .types import RangeResponse, RawDownload, Upstream

logger = logging.getLogger("pkghist")

# Default timeout for upstream HTTP requests, in seconds
DEFAULT_TIMEOUT = 30

# Error the npm API returns for a range with no counts at all
NO_STATS_ERROR = "no stats for this package for this range (0008)"

REGISTRIES = ("npm", "pypi")

# pypistats.org only keeps daily counts for about this many days
PYPI_HISTORY_DAYS = 180


class PkghistError(Exception):
    """Base class for pkghist errors."""


class UpstreamError(PkghistError):
    """The upstream source reported an error for a range request."""


class NpmDownloadsClient:
    """Client for the npm downloads range API.

    An empty package name requests counts for the whole registry.
    """

    base_url = "https://api.npmjs.org/downloads/range"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()

    def earliest_day(self, now: datetime | None = None) -> date:
        return NPM_EPOCH

    def range_url(self, name: str, start: date, end: date) -> str:
        url = f"{self.base_url}/{start.isoformat()}:{end.isoformat()}"
        if name:
            # scoped packages keep their literal @scope/name form
            url += "/" + quote(name, safe="@/")
        return url

    def fetch_range(self, name: str, start: date, end: date) -> RangeResponse:
        url = self.range_url(name, start, end)
        logger.debug('Fetching "%s"', url)
        response = self.session.get(url, timeout=self.timeout)

        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise UpstreamError(f"Malformed response from {url}")

        if not isinstance(body, dict):
            raise UpstreamError(f"Unexpected response from {url}")

        if body.get("error"):
            return {"error": str(body["error"]), "downloads": []}

        response.raise_for_status()

        downloads: list[RawDownload] = []
        for item in body.get("downloads") or []:
            day = item.get("day")
            count = item.get("downloads")
            if not day or count is None:
                continue
            downloads.append({"day": str(day), "downloads": int(count)})

        logger.debug("Retrieved %d counts", len(downloads))
        return {"downloads": downloads}


class PypiStatsClient:
    """Client for daily PyPI download counts (without mirrors) via pypistats.

    pypistats.org keeps roughly the last six months. Ranges that end before
    its oldest day, and packages it has no data for, are reported as having
    no stats.
    """

    def earliest_day(self, now: datetime | None = None) -> date:
        """Day before the oldest day pypistats.org is expected to still hold."""
        return freshest_available_day(now) - timedelta(days=PYPI_HISTORY_DAYS)

    def fetch_range(self, name: str, start: date, end: date) -> RangeResponse:
        if not name:
            raise UpstreamError("PyPI has no all-packages download statistics")

        logger.debug("Fetching PyPI stats for %s from %s to %s", name, start, end)
        try:
            result = pypistats.overall(
                name,
                mirrors=False,
                start_date=start.isoformat(),
                end_date=end.isoformat(),
                total="daily",
                format="json",
            )
        except ValueError as e:
            # raised when the range ends before the oldest day kept upstream
            logger.debug("%s", e)
            return {"error": NO_STATS_ERROR, "downloads": []}

        if result.startswith("No data found"):
            logger.debug("%s", result)
            return {"error": NO_STATS_ERROR, "downloads": []}

        try:
            data = json.loads(result)
        except ValueError:
            raise UpstreamError(f"Malformed response from pypistats for {name}") from None

        downloads: list[RawDownload] = []
        for item in data.get("data", []):
            if item.get("category") != "without_mirrors":
                continue
            day = item.get("date")
            if not day:
                continue
            downloads.append({"day": str(day), "downloads": int(item.get("downloads", 0))})

        logger.debug("Retrieved %d counts", len(downloads))
        if not downloads:
            return {"error": NO_STATS_ERROR, "downloads": []}
        return {"downloads": downloads}


def make_upstream(registry: str = "npm", timeout: float = DEFAULT_TIMEOUT) -> Upstream:
    """Create the upstream client for a registry name."""
    if registry == "npm":
        return NpmDownloadsClient(timeout=timeout)
    if registry == "pypi":
        return PypiStatsClient()
    raise ValueError(
        f"Unknown registry: {registry} (expected one of {', '.join(REGISTRIES)})"
    )
