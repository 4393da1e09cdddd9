"""Type definitions for pkghist using TypedDict and Protocol for known structures."""

from datetime import date, datetime
from typing import Protocol, TypedDict


class Package(TypedDict):
    """Package registry row. An empty name stands for the all-packages aggregate."""

    id: int
    name: str


class DailyStatistic(TypedDict):
    """Download count for one package on one UTC calendar day.

    ``downloads`` is -1 when the upstream reported no data for the day.
    """

    day: date
    downloads: int


class RawDownload(TypedDict):
    """A single day as reported by the upstream source."""

    day: str
    downloads: int


class RangeResponse(TypedDict, total=False):
    """Upstream range response: sparse per-day counts plus an optional error."""

    downloads: list[RawDownload]
    error: str


class PackageSummary(TypedDict):
    """Stored coverage for a package."""

    name: str
    days: int
    first_day: str | None
    last_day: str | None


class Upstream(Protocol):
    """Source of per-day download counts for a package and date range."""

    def earliest_day(self, now: datetime | None = None) -> date: ...

    def fetch_range(self, name: str, start: date, end: date) -> RangeResponse: ...


class StatisticStore(Protocol):
    """Persistence used by the fetch orchestrator."""

    def find_or_create_package(self, name: str) -> Package: ...

    def get_statistics(self, package_id: int) -> list[DailyStatistic]: ...

    def insert_statistics(
        self, package_id: int, statistics: list[DailyStatistic]
    ) -> int: ...

    def average_downloads(self, start: date, end: date) -> dict[str, int]: ...
