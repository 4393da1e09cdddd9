"""
pkghist - Cache and serve daily package download history.

Incrementally fetches daily download counts from the npm downloads API (or
PyPI via pypistats), stores them in SQLite, and serves them over HTTP.
"""

__version__ = "0.2.0"

from .api import NpmDownloadsClient, PkghistError, PypiStatsClient, UpstreamError
from .db import SqliteStore
from .normalize import normalize_range
from .reconcile import RangePolicy, decide_next_range
from .service import get_package_statistics, query_average_downloads

__all__ = [
    "NpmDownloadsClient",
    "PkghistError",
    "PypiStatsClient",
    "RangePolicy",
    "SqliteStore",
    "UpstreamError",
    "decide_next_range",
    "get_package_statistics",
    "normalize_range",
    "query_average_downloads",
]
