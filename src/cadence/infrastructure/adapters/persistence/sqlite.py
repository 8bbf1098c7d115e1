"""
SQLite Review Repository: infrastructure adapter for a SQLite database file.

Implements ReviewRepository with one table per entity. Each commit runs in a
single ``BEGIN IMMEDIATE`` transaction and every write is guarded by the
record's version column, so writers in other processes are detected as
conflicts instead of being overwritten.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from cadence.application.utils.clock import normalize_datetime
from cadence.domain.errors import ConflictError, StorageError
from cadence.domain.review.models import ItemAggregateStats, LearningStatus, ReviewStatus
from cadence.domain.review.ports import ReviewRepository

from .staging import StagedWrite, StagingUnitOfWork

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS review_statuses (
    learner_id TEXT NOT NULL,
    item_id TEXT NOT NULL,
    status TEXT NOT NULL,
    easiness REAL NOT NULL,
    interval INTEGER NOT NULL,
    repetition INTEGER NOT NULL,
    review_count INTEGER NOT NULL,
    correct_count INTEGER NOT NULL,
    last_quality INTEGER,
    last_reviewed_at TEXT,
    next_review_at TEXT,
    version INTEGER NOT NULL,
    PRIMARY KEY (learner_id, item_id)
);
CREATE INDEX IF NOT EXISTS idx_review_statuses_due
    ON review_statuses (learner_id, next_review_at);
CREATE TABLE IF NOT EXISTS item_stats (
    item_id TEXT PRIMARY KEY,
    total_reviews INTEGER NOT NULL,
    average_quality REAL NOT NULL,
    success_rate INTEGER NOT NULL,
    successful_reviews INTEGER NOT NULL,
    last_reviewed_at TEXT,
    version INTEGER NOT NULL
);
"""

_STATUS_COLUMNS = (
    "learner_id, item_id, status, easiness, interval, repetition, review_count, "
    "correct_count, last_quality, last_reviewed_at, next_review_at, version"
)


def _to_text(value: datetime | None) -> str | None:
    # Fixed width UTC text so SQL string comparison orders like the datetimes
    if value is None:
        return None
    return normalize_datetime(value).isoformat(timespec="microseconds")


def _from_text(value: str | None) -> datetime | None:
    if value is None:
        return None
    return normalize_datetime(datetime.fromisoformat(value))


def _row_to_status(row: sqlite3.Row) -> ReviewStatus:
    return ReviewStatus(
        learner_id=row["learner_id"],
        item_id=row["item_id"],
        status=LearningStatus(row["status"]),
        easiness=float(row["easiness"]),
        interval=int(row["interval"]),
        repetition=int(row["repetition"]),
        review_count=int(row["review_count"]),
        correct_count=int(row["correct_count"]),
        last_quality=row["last_quality"],
        last_reviewed_at=_from_text(row["last_reviewed_at"]),
        next_review_at=_from_text(row["next_review_at"]),
        version=int(row["version"]),
    )


def _row_to_stats(row: sqlite3.Row) -> ItemAggregateStats:
    return ItemAggregateStats(
        item_id=row["item_id"],
        total_reviews=int(row["total_reviews"]),
        average_quality=float(row["average_quality"]),
        success_rate=int(row["success_rate"]),
        successful_reviews=int(row["successful_reviews"]),
        last_reviewed_at=_from_text(row["last_reviewed_at"]),
        version=int(row["version"]),
    )


class SqliteUnitOfWork(StagingUnitOfWork):
    def __init__(self, repo: "SqliteReviewRepository"):
        super().__init__()
        self._repo = repo

    async def _read_status(self, learner_id: str, item_id: str) -> ReviewStatus | None:
        rows = self._repo._query(
            f"SELECT {_STATUS_COLUMNS} FROM review_statuses WHERE learner_id = ? AND item_id = ?",
            (learner_id, item_id),
        )
        return _row_to_status(rows[0]) if rows else None

    async def _read_learner_statuses(self, learner_id: str) -> list[ReviewStatus]:
        rows = self._repo._query(
            f"SELECT {_STATUS_COLUMNS} FROM review_statuses WHERE learner_id = ?",
            (learner_id,),
        )
        return [_row_to_status(r) for r in rows]

    async def _read_due_statuses(self, learner_id: str, now: datetime) -> list[ReviewStatus]:
        rows = self._repo._query(
            f"SELECT {_STATUS_COLUMNS} FROM review_statuses "
            "WHERE learner_id = ? AND (status = ? OR next_review_at <= ?)",
            (learner_id, LearningStatus.NEW.value, _to_text(now)),
        )
        return [_row_to_status(r) for r in rows]

    async def _read_item_stats(self, item_id: str) -> ItemAggregateStats | None:
        rows = self._repo._query(
            "SELECT item_id, total_reviews, average_quality, success_rate, successful_reviews, "
            "last_reviewed_at, version FROM item_stats WHERE item_id = ?",
            (item_id,),
        )
        return _row_to_stats(rows[0]) if rows else None

    def _write(self, statuses: list[StagedWrite], stats: list[StagedWrite]) -> None:
        self._repo._transaction(lambda conn: self._apply(conn, statuses, stats))

    @staticmethod
    def _apply(conn: sqlite3.Connection, statuses: list[StagedWrite], stats: list[StagedWrite]) -> None:
        for write in statuses:
            s: ReviewStatus = write.record
            values = (
                s.status.value,
                s.easiness,
                s.interval,
                s.repetition,
                s.review_count,
                s.correct_count,
                s.last_quality,
                _to_text(s.last_reviewed_at),
                _to_text(s.next_review_at),
                s.version,
            )
            if write.is_insert:
                try:
                    conn.execute(
                        f"INSERT INTO review_statuses ({_STATUS_COLUMNS}) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (s.learner_id, s.item_id, *values),
                    )
                except sqlite3.IntegrityError as e:
                    raise ConflictError(f"status {s.key} was created concurrently") from e
            else:
                cursor = conn.execute(
                    "UPDATE review_statuses SET status = ?, easiness = ?, interval = ?, "
                    "repetition = ?, review_count = ?, correct_count = ?, last_quality = ?, "
                    "last_reviewed_at = ?, next_review_at = ?, version = ? "
                    "WHERE learner_id = ? AND item_id = ? AND version = ?",
                    (*values, s.learner_id, s.item_id, write.expected_version),
                )
                if cursor.rowcount != 1:
                    raise ConflictError(f"status {s.key} changed concurrently")

        for write in stats:
            a: ItemAggregateStats = write.record
            values = (
                a.total_reviews,
                a.average_quality,
                a.success_rate,
                a.successful_reviews,
                _to_text(a.last_reviewed_at),
                a.version,
            )
            if write.is_insert:
                try:
                    conn.execute(
                        "INSERT INTO item_stats (item_id, total_reviews, average_quality, "
                        "success_rate, successful_reviews, last_reviewed_at, version) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?)",
                        (a.item_id, *values),
                    )
                except sqlite3.IntegrityError as e:
                    raise ConflictError(f"item stats {a.item_id} were created concurrently") from e
            else:
                cursor = conn.execute(
                    "UPDATE item_stats SET total_reviews = ?, average_quality = ?, success_rate = ?, "
                    "successful_reviews = ?, last_reviewed_at = ?, version = ? "
                    "WHERE item_id = ? AND version = ?",
                    (*values, a.item_id, write.expected_version),
                )
                if cursor.rowcount != 1:
                    raise ConflictError(f"item stats {a.item_id} changed concurrently")


class SqliteReviewRepository(ReviewRepository):
    """
    ReviewRepository persisted in a SQLite database file.

    The connection is opened on construction and released by close().
    """

    def __init__(self, db_path: Path | str, timeout: float = 10.0):
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn: sqlite3.Connection | None = sqlite3.connect(
                self.db_path, timeout=timeout, isolation_level=None, check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Could not open review database at {self.db_path}: {e}")
            raise StorageError(f"Could not open review database: {e}") from e
        logger.info(f"Review database ready at {self.db_path}")

    def unit_of_work(self) -> SqliteUnitOfWork:
        if self._conn is None:
            raise StorageError("Repository is closed")
        return SqliteUnitOfWork(self)

    async def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Repository is closed")
        return self._conn

    def _query(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._connection().execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.error(f"Review database read failed: {e}")
                raise StorageError(f"Review database read failed: {e}") from e

    def _transaction(self, body) -> None:
        with self._lock:
            conn = self._connection()
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                logger.error(f"Could not start transaction: {e}")
                raise StorageError(f"Could not start transaction: {e}") from e
            try:
                body(conn)
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error(f"Review database write failed: {e}")
                raise StorageError(f"Review database write failed: {e}") from e
            except BaseException:
                self._rollback(conn)
                raise

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
