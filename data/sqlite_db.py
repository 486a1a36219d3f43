"""
SQLite implementation of DatabaseInterface.

This module provides a complete SQLite implementation of the database interface,
including automatic migrations, transactions and per-article locking.
"""

import functools
import json
import sqlite3
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Dict, Any, Union

from .interface import DatabaseInterface
from . import queries as Q
from domain.exceptions import ConflictError, DatabaseError

logger = logging.getLogger(__name__)


# Columns that update_article_fields() may touch
ARTICLE_UPDATABLE_COLUMNS = {
    "category",
    "label",
    "size",
    "notes",
    "expiry_date",
    "helmet_manufactured_at",
    "helmet_last_check",
    "helmet_next_check",
}

PERSON_UPDATABLE_COLUMNS = {"first_name", "last_name", "status"}

DATE_COLUMNS = (
    "expiry_date",
    "helmet_manufactured_at",
    "helmet_last_check",
    "helmet_next_check",
)

TIMESTAMP_COLUMNS = ("created_at", "updated_at", "last_movement_at", "performed_at")


def _to_db(value: Any) -> Any:
    """Convert date/datetime to ISO text, pass everything else through."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _json_default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _to_json(value: Optional[Dict[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=_json_default)


def _from_json(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    return json.loads(value)


def _parse_timestamp(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Unparsable timestamp in database: {value!r}")
        return None


def _decode_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Turn stored ISO text back into date/datetime objects."""
    for column in DATE_COLUMNS:
        if row.get(column):
            row[column] = date.fromisoformat(row[column][:10])
    for column in TIMESTAMP_COLUMNS:
        if row.get(column):
            row[column] = _parse_timestamp(row[column])
    return row


def _synchronized(method):
    """Serialize access to the shared connection."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class _KeyedLocks:
    """
    One lock per key, created on demand and dropped when unused.

    Holding the lock for key A never blocks holders of key B.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Any, list] = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class SQLiteDatabase(DatabaseInterface):
    """
    SQLite implementation of DatabaseInterface.

    Features:
    - Automatic migrations on initialization
    - Explicit BEGIN IMMEDIATE / COMMIT / ROLLBACK transactions
    - Per-article and per-person locks for mutations
    - Foreign key enforcement
    - Connection shared across threads, access serialized by a re-entrant lock
    """

    def __init__(self, db_path: Union[Path, str]):
        """
        Initialize SQLite database.

        Args:
            db_path: Path to SQLite database file (created if not exists),
                     or ":memory:"
        """
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self._in_transaction = False
        self._article_locks = _KeyedLocks()
        self._person_locks = _KeyedLocks()

        # Autocommit mode - transactions are opened explicitly in transaction()
        self.conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,
            isolation_level=None,
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")

        self._run_migrations()
        self._storage_location_id = self._load_storage_location_id()
        logger.info(f"SQLite database initialized at {self.db_path}")

    def _row_to_dict(self, row: sqlite3.Row) -> Optional[Dict[str, Any]]:
        """Convert sqlite3.Row to dictionary (dates decoded)."""
        return _decode_row(dict(row)) if row else None

    def _rows_to_dicts(self, rows: List[sqlite3.Row]) -> List[Dict[str, Any]]:
        """Convert list of sqlite3.Row to list of dicts (dates decoded)."""
        return [_decode_row(dict(row)) for row in rows]

    def _run_migrations(self):
        """
        Run all SQL migration files in order, tracking which have been applied.

        Uses schema_migrations table to track applied migrations.
        """
        migrations_dir = Path(__file__).parent / "migrations"
        migration_files = sorted(migrations_dir.glob("*.sql"))

        # Step 1: Ensure migration tracking table exists
        tracking_migration = migrations_dir / "000_migration_tracking.sql"
        if tracking_migration.exists():
            self.conn.executescript(tracking_migration.read_text(encoding="utf-8"))

        # Step 2: Get list of already-applied migrations
        cursor = self.conn.cursor()
        cursor.execute("SELECT migration_name FROM schema_migrations")
        applied_migrations = {row[0] for row in cursor.fetchall()}

        # Step 3: Run each migration that hasn't been applied yet
        migrations_run = 0
        for migration_file in migration_files:
            migration_name = migration_file.name

            if migration_name in applied_migrations:
                logger.debug(f"Skipping already-applied migration: {migration_name}")
                continue

            logger.debug(f"Running migration: {migration_name}")
            sql = migration_file.read_text(encoding="utf-8")

            try:
                self.conn.executescript(sql)
                cursor.execute(
                    "INSERT OR IGNORE INTO schema_migrations (migration_name) VALUES (?)",
                    (migration_name,)
                )
                migrations_run += 1
                logger.info(f"Applied migration: {migration_name}")

            except sqlite3.Error as e:
                logger.exception(f"Migration {migration_name} failed")
                raise DatabaseError(
                    f"Migration failed: {migration_name}",
                    details={"migration": migration_name, "error": str(e)},
                )

        logger.info(f"Migration summary: {migrations_run} new, {len(applied_migrations)} already applied")

    def _load_storage_location_id(self) -> int:
        """Resolve the singleton storage location once."""
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_STORAGE_LOCATION_ID)
        row = cursor.fetchone()
        if not row:
            raise DatabaseError("No storage location found")
        return int(row["id"])

    # ==================== Transactions & Locking ====================

    @contextmanager
    def transaction(self):
        """Open a write transaction (BEGIN IMMEDIATE), commit or roll back."""
        with self._lock:
            if self._in_transaction:
                # Joined outer transaction
                yield
                return

            self.conn.execute("BEGIN IMMEDIATE")
            self._in_transaction = True
            try:
                yield
                self.conn.execute("COMMIT")
            except BaseException:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                logger.debug("Transaction rolled back")
                raise
            finally:
                self._in_transaction = False

    def lock_article(self, article_id: str):
        """Exclusive access to one article."""
        return self._article_locks.hold(article_id)

    def lock_person(self, person_id: int):
        """Exclusive access to one person."""
        return self._person_locks.hold(person_id)

    # ==================== Location Operations ====================

    @property
    def storage_location_id(self) -> int:
        return self._storage_location_id

    @_synchronized
    def get_person_location_id(self, person_id: int) -> Optional[int]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_PERSON_LOCATION_ID, (person_id,))
        row = cursor.fetchone()
        return int(row["id"]) if row else None

    # ==================== Article Operations ====================

    @_synchronized
    def insert_article(
        self,
        article_id: str,
        category: str,
        label: str,
        location_id: int,
        created_at: datetime,
        size: Optional[str] = None,
        notes: Optional[str] = None,
        expiry_date=None,
        helmet_manufactured_at=None,
        helmet_last_check=None,
        helmet_next_check=None,
    ) -> None:
        """Insert a new article."""
        try:
            self.conn.execute(
                Q.INSERT_ARTICLE,
                (
                    article_id,
                    category,
                    label,
                    size,
                    notes,
                    _to_db(expiry_date),
                    _to_db(helmet_manufactured_at),
                    _to_db(helmet_last_check),
                    _to_db(helmet_next_check),
                    location_id,
                    _to_db(created_at),
                    _to_db(created_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e) or "PRIMARY KEY" in str(e):
                raise ConflictError(
                    f"Article '{article_id}' already exists",
                    details={"article_id": article_id},
                )
            raise DatabaseError(
                f"Failed to save article: {e}",
                details={"article_id": article_id},
            )

    @_synchronized
    def get_article(self, article_id: str) -> Optional[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_ACTIVE_ARTICLE, (article_id,))
        return self._row_to_dict(cursor.fetchone())

    @_synchronized
    def get_article_for_update(self, article_id: str) -> Optional[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_ARTICLE_FOR_UPDATE, (article_id,))
        return self._row_to_dict(cursor.fetchone())

    @_synchronized
    def list_articles(self, assigned_only: bool = False) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_ASSIGNED_ARTICLES if assigned_only else Q.SELECT_ACTIVE_ARTICLES)
        return self._rows_to_dicts(cursor.fetchall())

    @_synchronized
    def list_person_articles(self, person_id: int) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_PERSON_ARTICLES, (person_id,))
        return self._rows_to_dicts(cursor.fetchall())

    @_synchronized
    def update_article_fields(
        self,
        article_id: str,
        fields: Dict[str, Any],
        updated_at: datetime,
    ) -> bool:
        """
        Update article with multiple fields at once.

        Dynamically builds UPDATE query based on provided fields.
        Only updates whitelisted columns.
        """
        fields_to_update = {
            column: value
            for column, value in fields.items()
            if column in ARTICLE_UPDATABLE_COLUMNS
        }

        if not fields_to_update:
            logger.warning(f"No valid fields to update for article {article_id}")
            return False

        assignments = ", ".join(f"{column} = ?" for column in fields_to_update)
        params = [_to_db(value) for value in fields_to_update.values()]
        params.extend([_to_db(updated_at), article_id])

        cursor = self.conn.cursor()
        cursor.execute(Q.UPDATE_ARTICLE_FIELDS.format(assignments=assignments), params)
        logger.debug(f"Updated article {article_id} with fields: {list(fields_to_update.keys())}")
        return cursor.rowcount > 0

    @_synchronized
    def update_article_location(
        self,
        article_id: str,
        location_id: int,
        updated_at: datetime,
    ) -> bool:
        cursor = self.conn.cursor()
        cursor.execute(Q.UPDATE_ARTICLE_LOCATION, (location_id, _to_db(updated_at), article_id))
        return cursor.rowcount > 0

    @_synchronized
    def retire_article(self, article_id: str, updated_at: datetime) -> bool:
        cursor = self.conn.cursor()
        cursor.execute(Q.RETIRE_ARTICLE, (_to_db(updated_at), article_id))
        return cursor.rowcount > 0

    @_synchronized
    def count_active_articles_at_location(self, location_id: int) -> int:
        cursor = self.conn.cursor()
        cursor.execute(Q.COUNT_ACTIVE_ARTICLES_AT_LOCATION, (location_id,))
        return int(cursor.fetchone()[0])

    @_synchronized
    def move_retired_articles(self, from_location_id: int, to_location_id: int) -> int:
        cursor = self.conn.cursor()
        cursor.execute(Q.MOVE_RETIRED_ARTICLES, (to_location_id, from_location_id))
        return cursor.rowcount

    # ==================== Movement Ledger ====================

    @_synchronized
    def insert_movement(
        self,
        article_id: str,
        action: str,
        event_type: Optional[str],
        from_location_id: Optional[int],
        to_location_id: Optional[int],
        performed_at: datetime,
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
        performed_by: Optional[str] = None,
    ) -> int:
        """Append a ledger row."""
        cursor = self.conn.cursor()
        cursor.execute(
            Q.INSERT_MOVEMENT,
            (
                article_id,
                from_location_id,
                to_location_id,
                action,
                event_type,
                _to_json(old_value),
                _to_json(new_value),
                _to_db(performed_at),
                performed_by,
            ),
        )
        logger.debug(f"Ledger: {action} for article {article_id} (id={cursor.lastrowid})")
        return cursor.lastrowid

    @_synchronized
    def get_article_movements(
        self,
        article_id: str,
        limit: int = 3,
    ) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_ARTICLE_MOVEMENTS, (article_id, limit))
        movements = self._rows_to_dicts(cursor.fetchall())
        for movement in movements:
            movement["old_value"] = _from_json(movement["old_value"])
            movement["new_value"] = _from_json(movement["new_value"])
        return movements

    @_synchronized
    def count_article_movements(self, article_id: str) -> int:
        cursor = self.conn.cursor()
        cursor.execute(Q.COUNT_ARTICLE_MOVEMENTS, (article_id,))
        return int(cursor.fetchone()[0])

    # ==================== Person Operations ====================

    @_synchronized
    def insert_person(
        self,
        first_name: str,
        last_name: str,
        created_at: datetime,
        status: str = "active",
    ) -> int:
        cursor = self.conn.cursor()
        cursor.execute(Q.INSERT_PERSON, (first_name, last_name, status, _to_db(created_at)))
        return cursor.lastrowid

    @_synchronized
    def insert_person_location(self, person_id: int, name: str) -> int:
        cursor = self.conn.cursor()
        cursor.execute(Q.INSERT_PERSON_LOCATION, (name, person_id))
        return cursor.lastrowid

    @_synchronized
    def rename_person_location(self, person_id: int, name: str) -> bool:
        cursor = self.conn.cursor()
        cursor.execute(Q.UPDATE_PERSON_LOCATION_NAME, (name, person_id))
        return cursor.rowcount > 0

    @_synchronized
    def get_person(self, person_id: int) -> Optional[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_PERSON_BY_ID, (person_id,))
        return self._row_to_dict(cursor.fetchone())

    @_synchronized
    def list_persons(self) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(Q.SELECT_ALL_PERSONS)
        return self._rows_to_dicts(cursor.fetchall())

    @_synchronized
    def update_person_fields(self, person_id: int, fields: Dict[str, Any]) -> bool:
        fields_to_update = {
            column: value
            for column, value in fields.items()
            if column in PERSON_UPDATABLE_COLUMNS
        }

        if not fields_to_update:
            logger.warning(f"No valid fields to update for person {person_id}")
            return False

        assignments = ", ".join(f"{column} = ?" for column in fields_to_update)
        params = list(fields_to_update.values()) + [person_id]

        cursor = self.conn.cursor()
        cursor.execute(Q.UPDATE_PERSON_FIELDS.format(assignments=assignments), params)
        return cursor.rowcount > 0

    @_synchronized
    def delete_person(self, person_id: int) -> bool:
        cursor = self.conn.cursor()
        cursor.execute(Q.DELETE_PERSON, (person_id,))
        return cursor.rowcount > 0

    # ==================== Utility Operations ====================

    @_synchronized
    def ping(self) -> bool:
        try:
            self.conn.execute(Q.PING).fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def close(self):
        """Close database connection."""
        if self.conn:
            with self._lock:
                self.conn.close()
            logger.info("Database connection closed")
