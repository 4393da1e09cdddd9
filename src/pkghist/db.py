"""SQLite storage for packages and their daily download statistics."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

from .types import DailyStatistic, Package, PackageSummary

logger = logging.getLogger("pkghist")

# Seconds to wait for a concurrent writer to release the database
DEFAULT_BUSY_TIMEOUT = 30.0


def get_config_dir() -> Path:
    """Get the pkghist config directory (~/.pkghist), creating it if needed."""
    config_dir = Path.home() / ".pkghist"
    config_dir.mkdir(exist_ok=True)
    return config_dir


def default_db_file() -> str:
    return str(get_config_dir() / "pkghist.db")


def get_db_connection(db_path: str) -> sqlite3.Connection:
    """Create and return a database connection."""
    conn = sqlite3.connect(db_path, timeout=DEFAULT_BUSY_TIMEOUT)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize the database schema."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS package (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS statistic (
            package_id INTEGER NOT NULL REFERENCES package(id),
            day TEXT NOT NULL,
            downloads INTEGER NOT NULL,
            UNIQUE(package_id, day)
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_statistic_day
        ON statistic(day)
    """)
    conn.execute("""
        CREATE VIEW IF NOT EXISTS package_statistic AS
            SELECT name, day, downloads
            FROM statistic
            INNER JOIN package ON package.id = statistic.package_id
    """)
    conn.commit()


@contextmanager
def get_db(db_path: str) -> Iterator[sqlite3.Connection]:
    """Open an initialized connection and close it on exit."""
    conn = get_db_connection(db_path)
    try:
        init_db(conn)
        yield conn
    finally:
        conn.close()


def _to_statistic(row: sqlite3.Row) -> DailyStatistic:
    return {"day": date.fromisoformat(row["day"]), "downloads": row["downloads"]}


class SqliteStore:
    """Statistic store backed by a SQLite file.

    One store is created at startup and shared by every request. Each
    operation opens its own short-lived connection, so a store can be used
    from several threads at once.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def initialize(self) -> None:
        """Create the schema if it does not exist yet."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with get_db(self.db_path):
            logger.debug("Database ready at %s", self.db_path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = get_db_connection(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def find_package(self, name: str) -> Package | None:
        """Look up a package by exact name."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT id, name FROM package WHERE name = ?", (name,)
            ).fetchone()
        if row is None:
            return None
        return {"id": row["id"], "name": row["name"]}

    def find_or_create_package(self, name: str) -> Package:
        """Return the package row for name, inserting it if needed.

        The insert ignores a row created concurrently by another request;
        the unique name constraint keeps a single row either way.
        """
        package = self.find_package(name)
        if package is not None:
            return package

        with self.connect() as conn:
            conn.execute("INSERT OR IGNORE INTO package (name) VALUES (?)", (name,))
            row = conn.execute(
                "SELECT id, name FROM package WHERE name = ?", (name,)
            ).fetchone()
            conn.commit()
        logger.debug('Registered package "%s" with id %d', name, row["id"])
        return {"id": row["id"], "name": row["name"]}

    def get_statistics(self, package_id: int) -> list[DailyStatistic]:
        """Get all statistics for a package, ordered by day."""
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT day, downloads FROM statistic WHERE package_id = ? ORDER BY day",
                (package_id,),
            )
            return [_to_statistic(row) for row in cursor.fetchall()]

    def get_recent_statistics(self, name: str, limit: int = 30) -> list[DailyStatistic]:
        """Get the latest `limit` statistics for a package by name, ordered by day."""
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT day, downloads FROM package_statistic
                WHERE name = ?
                ORDER BY day DESC
                LIMIT ?
                """,
                (name, limit),
            )
            rows = [_to_statistic(row) for row in cursor.fetchall()]
        return list(reversed(rows))

    def insert_statistics(self, package_id: int, statistics: list[DailyStatistic]) -> int:
        """Insert statistics for a package in a single transaction.

        Days already stored are left untouched. Returns the number of rows
        actually inserted.
        """
        if not statistics:
            return 0

        rows = [(package_id, s["day"].isoformat(), s["downloads"]) for s in statistics]
        with self.connect() as conn:
            before = conn.total_changes
            conn.executemany(
                "INSERT OR IGNORE INTO statistic (package_id, day, downloads) VALUES (?, ?, ?)",
                rows,
            )
            conn.commit()
            inserted = conn.total_changes - before

        if inserted < len(rows):
            logger.warning(
                "Ignored %d already stored days for package %d",
                len(rows) - inserted,
                package_id,
            )
        return inserted

    def average_downloads(self, start: date, end: date) -> dict[str, int]:
        """Average available downloads per package for days in [start, end)."""
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT name, CAST(ROUND(AVG(downloads)) AS INTEGER) AS average
                FROM package_statistic
                WHERE downloads > -1 AND day >= ? AND day < ?
                GROUP BY name
                ORDER BY name
                """,
                (start.isoformat(), end.isoformat()),
            )
            return {row["name"]: row["average"] for row in cursor.fetchall()}

    def get_package_summaries(self) -> list[PackageSummary]:
        """Get stored coverage for every package, ordered by name."""
        with self.connect() as conn:
            cursor = conn.execute("""
                SELECT package.name AS name,
                       COUNT(statistic.day) AS days,
                       MIN(statistic.day) AS first_day,
                       MAX(statistic.day) AS last_day
                FROM package
                LEFT JOIN statistic ON statistic.package_id = package.id
                GROUP BY package.id
                ORDER BY package.name
            """)
            return [
                {
                    "name": row["name"],
                    "days": row["days"],
                    "first_day": row["first_day"],
                    "last_day": row["last_day"],
                }
                for row in cursor.fetchall()
            ]
