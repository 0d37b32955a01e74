"""SQLite-based data persistence for Stock Keeper.

The whole database is held in an in-memory SQLite connection while the
process runs. Every committed write marks the store dirty and flushes it
back to the database file; an optional background thread flushes on a fixed
interval as a safety net. Closing the store performs a final flush.

A long-running kiosk and one-shot CLI commands may open the same file. Each
access first reloads the file if another process replaced it, and a flush
never overwrites a file it has not seen.
"""

import logging
import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from .errors import PersistenceError
from .item_query import ItemFilters, build_item_query, classify_expiry, days_until_expiry
from .models import (
    Category,
    ConsumptionAction,
    ConsumptionRecord,
    ConsumptionSummary,
    Item,
    ItemInput,
    Location,
    LocationInput,
    LocationType,
    Unit,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Dairy", "\U0001f95b", 1),
    ("Meat", "\U0001f969", 2),
    ("Poultry", "\U0001f357", 3),
    ("Seafood", "\U0001f41f", 4),
    ("Vegetables", "\U0001f96c", 5),
    ("Fruits", "\U0001f34e", 6),
    ("Bread & Bakery", "\U0001f35e", 7),
    ("Grains & Pasta", "\U0001f33e", 8),
    ("Canned Goods", "\U0001f96b", 9),
    ("Condiments", "\U0001f9c2", 10),
    ("Sauces", "\U0001f35d", 11),
    ("Snacks", "\U0001f37f", 12),
    ("Beverages", "\U0001f964", 13),
    ("Frozen Foods", "\U0001f9ca", 14),
    ("Leftovers", "\U0001f371", 15),
    ("Spices", "\U0001f336️", 16),
    ("Herbs", "\U0001f33f", 17),
    ("Oils & Vinegars", "\U0001fad2", 18),
    ("Baking", "\U0001f9c1", 19),
    ("Ready Meals", "\U0001f372", 20),
    ("Uncategorized", "\U0001f4e6", 99),
]

DEFAULT_LOCATIONS = [
    (1, "Freezer", LocationType.FREEZER.value, "❄️", "#81d4fa", 1),
]

SCHEMA = """
    -- Schema version tracking
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY
    );

    -- Storage locations
    CREATE TABLE IF NOT EXISTS locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'other'
            CHECK(type IN ('fridge', 'freezer', 'cupboard', 'spice', 'pantry', 'other')),
        icon TEXT NOT NULL DEFAULT '\U0001f4e6',
        color TEXT NOT NULL DEFAULT '#666666',
        sort_order INTEGER NOT NULL DEFAULT 0,
        is_visible INTEGER NOT NULL DEFAULT 1 CHECK(is_visible IN (0, 1)),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    -- Inventory items
    CREATE TABLE IF NOT EXISTS items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT 'Uncategorized',
        location TEXT DEFAULT NULL,
        location_id INTEGER DEFAULT NULL REFERENCES locations(id) ON DELETE SET NULL,
        brand TEXT DEFAULT NULL,
        is_homemade INTEGER NOT NULL DEFAULT 0 CHECK(is_homemade IN (0, 1)),
        quantity REAL NOT NULL DEFAULT 1 CHECK(quantity >= 0),
        unit TEXT NOT NULL DEFAULT 'pcs' CHECK(unit IN ('pcs', 'g', 'kg', 'ml', 'L')),
        date_added TEXT NOT NULL,
        expiry_date TEXT DEFAULT NULL,
        image_path TEXT DEFAULT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    -- Consumption history, kept when the item is deleted
    CREATE TABLE IF NOT EXISTS consumption_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item_id INTEGER DEFAULT NULL REFERENCES items(id) ON DELETE SET NULL,
        item_title TEXT NOT NULL,
        quantity_used REAL NOT NULL CHECK(quantity_used > 0),
        unit TEXT NOT NULL,
        action TEXT NOT NULL DEFAULT 'used' CHECK(action IN ('used', 'discarded', 'expired')),
        notes TEXT NOT NULL DEFAULT '',
        consumed_at TEXT NOT NULL
    );

    -- Category reference list
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL,
        icon TEXT NOT NULL DEFAULT '\U0001f4e6',
        sort_order INTEGER NOT NULL DEFAULT 0
    );

    CREATE INDEX IF NOT EXISTS idx_items_location_id ON items(location_id);
    CREATE INDEX IF NOT EXISTS idx_items_location ON items(location);
    CREATE INDEX IF NOT EXISTS idx_items_category ON items(category);
    CREATE INDEX IF NOT EXISTS idx_items_expiry ON items(expiry_date);
    CREATE INDEX IF NOT EXISTS idx_items_location_id_expiry ON items(location_id, expiry_date);
    CREATE INDEX IF NOT EXISTS idx_consumption_date ON consumption_history(consumed_at);
    CREATE INDEX IF NOT EXISTS idx_consumption_item ON consumption_history(item_id);
"""


def _casefold(value: object) -> object:
    """SQL function backing case-insensitive search."""
    if isinstance(value, str):
        return value.casefold()
    return value


def _timestamp(dt: datetime | None = None) -> str:
    """Local timestamp as stored in the database."""
    return (dt or datetime.now()).replace(microsecond=0).isoformat(sep=" ")


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value[:10]) if value else None


class SQLiteStore:
    """Owns the SQLite database for inventory data."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | None = None, flush_interval: float | None = None):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/stock-keeper.db
            flush_interval: Seconds between background flushes. No background
                flushing when None.
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "stock-keeper.db"
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._dirty = False
        self._disk_stamp: tuple[int, int, int] | None = None
        self._stop_event = threading.Event()
        self._flusher: threading.Thread | None = None

        self._ensure_directories()
        existed = self.db_path.exists()
        self._conn: sqlite3.Connection | None = self._load()
        if self._init_database() or not existed:
            self.flush(force=True)
        else:
            self._dirty = False

        if flush_interval:
            self.start_autoflush(flush_interval)

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> sqlite3.Connection:
        """Copy the database file into a fresh in-memory connection."""
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        if self.db_path.exists():
            self._copy_from_disk(conn)
            logger.info("Loaded database from %s", self.db_path)
        else:
            logger.info("Creating new database at %s", self.db_path)

        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        return conn

    def _init_database(self) -> bool:
        """Initialize schema and seed data. Safe to run on an existing database.

        Returns:
            True if the schema or the seed rows changed
        """
        with self._transaction(flush=False) as conn:
            schema_before = conn.execute("PRAGMA schema_version").fetchone()[0]
            changes_before = conn.total_changes
            conn.executescript(SCHEMA)

            first_run = conn.execute("SELECT version FROM schema_version").fetchone() is None
            if first_run:
                now = _timestamp()
                conn.executemany(
                    """
                    INSERT OR IGNORE INTO locations
                    (id, name, type, icon, color, sort_order, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [(*loc, now, now) for loc in DEFAULT_LOCATIONS],
                )
                conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,)
                )

            conn.executemany(
                "INSERT OR IGNORE INTO categories (name, icon, sort_order) VALUES (?, ?, ?)",
                DEFAULT_CATEGORIES,
            )
            changed = (
                conn.total_changes != changes_before
                or conn.execute("PRAGMA schema_version").fetchone()[0] != schema_before
            )
        logger.debug("Schema ready (version %s)", self.SCHEMA_VERSION)
        return changed

    # --- Store lifecycle ---

    @property
    def is_dirty(self) -> bool:
        """Whether there are writes not yet flushed to disk."""
        return self._dirty

    @property
    def closed(self) -> bool:
        return self._conn is None

    def mark_dirty(self) -> None:
        """Flag the in-memory database as needing a flush."""
        self._dirty = True

    def _stat_disk(self) -> tuple[int, int, int] | None:
        """Identify the current database file. None if it does not exist."""
        try:
            st = os.stat(self.db_path)
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _copy_from_disk(self, conn: sqlite3.Connection) -> None:
        source = sqlite3.connect(self.db_path)
        try:
            source.backup(conn)
        finally:
            source.close()
        self._disk_stamp = self._stat_disk()

    def _changed_on_disk(self) -> bool:
        """Whether another process replaced the database file since we last synced."""
        stamp = self._stat_disk()
        return stamp is not None and stamp != self._disk_stamp

    def _sync_from_disk(self) -> bool:
        """Reload the database file if another process wrote it.

        Returns:
            False if the file changed while this store has unflushed writes.
            Those writes cannot be merged, so the in-memory copy is kept.
        """
        if self._conn is None or not self._changed_on_disk():
            return True
        if self._dirty:
            return False
        self._copy_from_disk(self._conn)
        logger.info("Reloaded database changed on disk at %s", self.db_path)
        return True

    def flush(self, force: bool = False) -> bool:
        """Write the in-memory database to disk.

        The copy goes to a temporary file that then replaces the database
        file, so a failed flush never leaves a half-written file behind.
        Failures are logged, the store stays dirty and the next flush retries.
        A file written by another process since the last sync is never
        overwritten.

        Args:
            force: Flush even if nothing changed

        Returns:
            True if the database on disk is up to date
        """
        with self._lock:
            if self._conn is None:
                return not self._dirty
            if not self._dirty and not force:
                return True
            if self._changed_on_disk():
                logger.error(
                    "Not flushing: %s was changed by another process; "
                    "unsaved changes in this process are kept in memory only",
                    self.db_path,
                )
                self._dirty = True
                return False

            tmp_path = self.db_path.with_name(f"{self.db_path.name}.{os.getpid()}.tmp")
            try:
                tmp_path.unlink(missing_ok=True)
                target = sqlite3.connect(tmp_path)
                try:
                    self._conn.backup(target)
                finally:
                    target.close()
                os.replace(tmp_path, self.db_path)
                self._disk_stamp = self._stat_disk()
            except (sqlite3.Error, OSError):
                logger.exception("Failed to flush database to %s", self.db_path)
                self._dirty = True
                return False

            self._dirty = False
            logger.debug("Flushed database to %s", self.db_path)
            return True

    def start_autoflush(self, interval: float) -> None:
        """Start flushing on a fixed interval in a background thread."""
        if self._flusher is not None:
            return
        self._stop_event.clear()
        self._flusher = threading.Thread(
            target=self._autoflush_loop,
            args=(interval,),
            name="stock-keeper-flush",
            daemon=True,
        )
        self._flusher.start()

    def stop_autoflush(self) -> None:
        """Stop the background flusher, if running."""
        if self._flusher is None:
            return
        self._stop_event.set()
        self._flusher.join()
        self._flusher = None

    def _autoflush_loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            self.flush()

    def close(self) -> None:
        """Stop background flushing, flush once more and release the connection."""
        if self._conn is None:
            return
        self.stop_autoflush()
        self.flush()
        with self._lock:
            self._conn.close()
            self._conn = None
        logger.debug("Closed database %s", self.db_path)

    @contextmanager
    def _get_connection(self, for_write: bool = False) -> Iterator[sqlite3.Connection]:
        """Get the shared connection, picking up writes made by other processes.

        Raises:
            PersistenceError: If the store is closed, or a write is attempted
                while the file on disk conflicts with unflushed changes.
        """
        with self._lock:
            if self._conn is None:
                raise PersistenceError("Store is closed")
            if not self._sync_from_disk() and for_write:
                raise PersistenceError(
                    f"{self.db_path} was changed by another process while this one "
                    "had unsaved changes; restart to reload"
                )
            yield self._conn

    @contextmanager
    def _transaction(self, flush: bool = True) -> Iterator[sqlite3.Connection]:
        """Run a write atomically, then flush it to disk.

        Raises:
            PersistenceError: If the write fails. Nothing is committed.
        """
        with self._get_connection(for_write=True) as conn:
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.exception("Database write failed")
                raise PersistenceError(f"Database write failed: {e}") from e
            except BaseException:
                conn.rollback()
                raise
            self._dirty = True
        if flush:
            self.flush()

    # --- Row mapping ---

    def _row_to_item(self, row: sqlite3.Row, today: date) -> Item:
        expiry_date = _parse_date(row["expiry_date"])
        keys = row.keys()
        location_type = row["location_type"] if "location_type" in keys else None
        return Item(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            category=row["category"],
            location=row["location"],
            location_id=row["location_id"],
            brand=row["brand"],
            is_homemade=bool(row["is_homemade"]),
            quantity=row["quantity"],
            unit=Unit(row["unit"]),
            date_added=_parse_date(row["date_added"]),
            expiry_date=expiry_date,
            image_path=row["image_path"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
            location_name=row["location_name"] if "location_name" in keys else None,
            location_icon=row["location_icon"] if "location_icon" in keys else None,
            location_type=LocationType(location_type) if location_type else None,
            location_color=row["location_color"] if "location_color" in keys else None,
            expiry_status=classify_expiry(expiry_date, today),
            days_until_expiry=days_until_expiry(expiry_date, today),
        )

    def _row_to_location(self, row: sqlite3.Row) -> Location:
        return Location(
            id=row["id"],
            name=row["name"],
            type=LocationType(row["type"]),
            icon=row["icon"],
            color=row["color"],
            sort_order=row["sort_order"],
            is_visible=bool(row["is_visible"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    def _row_to_record(self, row: sqlite3.Row) -> ConsumptionRecord:
        return ConsumptionRecord(
            id=row["id"],
            item_id=row["item_id"],
            item_title=row["item_title"],
            quantity_used=row["quantity_used"],
            unit=Unit(row["unit"]),
            action=ConsumptionAction(row["action"]),
            notes=row["notes"] or "",
            consumed_at=_parse_timestamp(row["consumed_at"]),
        )

    # --- Item Operations ---

    def query_items(
        self, filters: ItemFilters | None = None, today: date | None = None
    ) -> list[Item]:
        """Load items matching filters in the fixed display order.

        Args:
            filters: Optional filters
            today: Reference date for expiry buckets. Defaults to date.today()

        Returns:
            List of Item, possibly empty
        """
        today = today or date.today()
        sql, params = build_item_query(filters, today)
        with self._get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_item(row, today) for row in rows]

    def get_item(self, item_id: int, today: date | None = None) -> Item | None:
        """Get a single item by ID, with derived expiry fields."""
        today = today or date.today()
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT i.*, l.name AS location_name, l.icon AS location_icon,
                       l.type AS location_type, l.color AS location_color
                FROM items i
                LEFT JOIN locations l ON i.location_id = l.id
                WHERE i.id = ?
                """,
                (item_id,),
            ).fetchone()
        return self._row_to_item(row, today) if row else None

    def insert_item(self, data: ItemInput) -> int:
        """Insert an item.

        Args:
            data: Validated item data; date_added must be set

        Returns:
            New item ID
        """
        now = _timestamp()
        with self._transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO items
                (title, description, category, location, location_id, brand, is_homemade,
                 quantity, unit, date_added, expiry_date, image_path, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.title,
                    data.description,
                    data.category,
                    data.location,
                    data.location_id,
                    data.brand,
                    int(data.is_homemade),
                    data.quantity,
                    data.unit.value,
                    (data.date_added or date.today()).isoformat(),
                    data.expiry_date.isoformat() if data.expiry_date else None,
                    data.image_path,
                    now,
                    now,
                ),
            )
            return cur.lastrowid

    def update_item(self, item_id: int, data: ItemInput) -> bool:
        """Overwrite an item's fields.

        A missing image_path or date_added keeps the stored value.

        Returns:
            True if a row was updated
        """
        with self._transaction() as conn:
            cur = conn.execute(
                """
                UPDATE items SET
                    title = ?,
                    description = ?,
                    category = ?,
                    location = ?,
                    location_id = ?,
                    brand = ?,
                    is_homemade = ?,
                    quantity = ?,
                    unit = ?,
                    date_added = COALESCE(?, date_added),
                    expiry_date = ?,
                    image_path = COALESCE(?, image_path),
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    data.title,
                    data.description,
                    data.category,
                    data.location,
                    data.location_id,
                    data.brand,
                    int(data.is_homemade),
                    data.quantity,
                    data.unit.value,
                    data.date_added.isoformat() if data.date_added else None,
                    data.expiry_date.isoformat() if data.expiry_date else None,
                    data.image_path,
                    _timestamp(),
                    item_id,
                ),
            )
            return cur.rowcount > 0

    def update_item_quantity(self, item_id: int, quantity: float) -> bool:
        """Overwrite an item's quantity. Returns True if a row was updated."""
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE items SET quantity = ?, updated_at = ? WHERE id = ?",
                (quantity, _timestamp(), item_id),
            )
            return cur.rowcount > 0

    def delete_items(self, item_ids: list[int]) -> int:
        """Delete items; their consumption records are detached, not deleted.

        Returns:
            Number of items deleted
        """
        if not item_ids:
            return 0
        placeholders = ",".join("?" * len(item_ids))
        with self._transaction() as conn:
            conn.execute(
                f"UPDATE consumption_history SET item_id = NULL WHERE item_id IN ({placeholders})",
                item_ids,
            )
            cur = conn.execute(f"DELETE FROM items WHERE id IN ({placeholders})", item_ids)
            return cur.rowcount

    def items_for_export(self, today: date | None = None) -> list[Item]:
        """All items ordered by location, category and title."""
        today = today or date.today()
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT i.*, l.name AS location_name, l.icon AS location_icon,
                       l.type AS location_type, l.color AS location_color
                FROM items i
                LEFT JOIN locations l ON i.location_id = l.id
                ORDER BY COALESCE(l.name, i.location), i.category, i.title, i.id
                """
            ).fetchall()
        return [self._row_to_item(row, today) for row in rows]

    # --- Consumption Operations ---

    def append_consumption(
        self,
        item_id: int,
        quantity_used: float,
        action: ConsumptionAction,
        notes: str = "",
        set_quantity: float | None = None,
    ) -> ConsumptionRecord | None:
        """Append a consumption record, snapshotting the item's title and unit.

        Args:
            item_id: Item the quantity came from
            quantity_used: Amount removed, strictly positive
            action: Why it was removed
            notes: Free-text notes
            set_quantity: If given, the item's new quantity, written in the
                same transaction as the record

        Returns:
            The new record, or None if the item does not exist
        """
        now = _timestamp()
        with self._transaction() as conn:
            item = conn.execute(
                "SELECT title, unit FROM items WHERE id = ?", (item_id,)
            ).fetchone()
            if item is None:
                return None

            cur = conn.execute(
                """
                INSERT INTO consumption_history
                (item_id, item_title, quantity_used, unit, action, notes, consumed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (item_id, item["title"], quantity_used, item["unit"], action.value, notes, now),
            )
            if set_quantity is not None:
                conn.execute(
                    "UPDATE items SET quantity = ?, updated_at = ? WHERE id = ?",
                    (set_quantity, now, item_id),
                )
            row = conn.execute(
                "SELECT * FROM consumption_history WHERE id = ?", (cur.lastrowid,)
            ).fetchone()
            return self._row_to_record(row)

    def query_history(
        self,
        item_id: int | None = None,
        since: datetime | None = None,
        action: ConsumptionAction | None = None,
        limit: int | None = None,
    ) -> list[ConsumptionRecord]:
        """Load consumption records, newest first."""
        sql = "SELECT * FROM consumption_history WHERE 1=1"
        params: list[object] = []

        if item_id is not None:
            sql += " AND item_id = ?"
            params.append(item_id)
        if since is not None:
            sql += " AND consumed_at >= ?"
            params.append(_timestamp(since))
        if action is not None:
            sql += " AND action = ?"
            params.append(action.value)

        sql += " ORDER BY consumed_at DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def consumption_totals(
        self, since: datetime, limit: int | None = None
    ) -> list[ConsumptionSummary]:
        """Sum consumption by title and unit since a point in time, largest first."""
        sql = """
            SELECT
                item_title,
                unit,
                SUM(quantity_used) AS total_consumed,
                COUNT(*) AS consumption_events,
                MAX(consumed_at) AS last_consumed
            FROM consumption_history
            WHERE consumed_at >= ?
            GROUP BY item_title, unit
            ORDER BY total_consumed DESC, item_title ASC
        """
        params: list[object] = [_timestamp(since)]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [
            ConsumptionSummary(
                item_title=row["item_title"],
                unit=Unit(row["unit"]),
                total_consumed=row["total_consumed"],
                consumption_events=row["consumption_events"],
                last_consumed=_parse_timestamp(row["last_consumed"]),
            )
            for row in rows
        ]

    # --- Location Operations ---

    def list_locations(self, visible_only: bool = False) -> list[Location]:
        """Load locations in display order."""
        sql = "SELECT * FROM locations"
        if visible_only:
            sql += " WHERE is_visible = 1"
        sql += " ORDER BY sort_order ASC, name ASC"
        with self._get_connection() as conn:
            rows = conn.execute(sql).fetchall()
        return [self._row_to_location(row) for row in rows]

    def get_location(self, location_id: int) -> Location | None:
        """Get a single location by ID."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM locations WHERE id = ?", (location_id,)).fetchone()
        return self._row_to_location(row) if row else None

    def insert_location(self, data: LocationInput) -> int:
        """Insert a location, appended after the current last one unless ordered explicitly.

        Returns:
            New location ID
        """
        now = _timestamp()
        with self._transaction() as conn:
            sort_order = data.sort_order
            if sort_order is None:
                max_order = conn.execute("SELECT MAX(sort_order) FROM locations").fetchone()[0]
                sort_order = (max_order or 0) + 1

            cur = conn.execute(
                """
                INSERT INTO locations
                (name, type, icon, color, sort_order, is_visible, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.name,
                    data.type.value,
                    data.icon,
                    data.color,
                    sort_order,
                    int(data.is_visible),
                    now,
                    now,
                ),
            )
            return cur.lastrowid

    def update_location(self, location: Location) -> bool:
        """Overwrite a location's editable fields. Returns True if a row was updated."""
        with self._transaction() as conn:
            cur = conn.execute(
                """
                UPDATE locations SET
                    name = ?, type = ?, icon = ?, color = ?, sort_order = ?,
                    is_visible = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    location.name,
                    location.type.value,
                    location.icon,
                    location.color,
                    location.sort_order,
                    int(location.is_visible),
                    _timestamp(),
                    location.id,
                ),
            )
            return cur.rowcount > 0

    def delete_location(self, location_id: int) -> int:
        """Detach items from a location, then delete it, in one transaction.

        Returns:
            Number of items that were detached
        """
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE items SET location_id = NULL, updated_at = ? WHERE location_id = ?",
                (_timestamp(), location_id),
            )
            detached = cur.rowcount
            conn.execute("DELETE FROM locations WHERE id = ?", (location_id,))
            return detached

    def reorder_locations(self, location_ids: list[int]) -> None:
        """Assign sort orders 1..N following the given ID sequence."""
        now = _timestamp()
        with self._transaction() as conn:
            conn.executemany(
                "UPDATE locations SET sort_order = ?, updated_at = ? WHERE id = ?",
                [(index, now, location_id) for index, location_id in enumerate(location_ids, 1)],
            )

    def location_counts(self) -> dict[int, int]:
        """Item counts keyed by location ID, for locations that have items."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT location_id, COUNT(*) AS count
                FROM items
                WHERE location_id IS NOT NULL
                GROUP BY location_id
                """
            ).fetchall()
        return {row["location_id"]: row["count"] for row in rows}

    # --- Category Operations ---

    def list_categories(self) -> list[Category]:
        """Load the category reference list."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM categories ORDER BY sort_order ASC, name ASC"
            ).fetchall()
        return [
            Category(id=row["id"], name=row["name"], icon=row["icon"], sort_order=row["sort_order"])
            for row in rows
        ]
