# src/ontrack/plan/plan_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from ..core.errors import InvalidPlanItemError, PlanItemNotFoundError, PlanStoreError
from .plan_models import PlanItem, validate_day_index, validate_order, validate_planned_hours
from .weeks import parse_week_start

logger = logging.getLogger(__name__)


class PlanItemStore:
    """
    SQLite plan item store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Ordering:
    - item_order is contiguous from 0 inside every (week_start, day_index) column
    - every mutation touching more than one row runs in a single
      BEGIN IMMEDIATE transaction and is rolled back as a whole on failure

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "plan.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("PlanItemStore ready db=%s total=%s", self._db_path, self.count_items())

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly in _transaction().
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PlanStoreError(f"cannot open plan db {self._db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error("PlanItemStore read failed: %s", e)
            raise PlanStoreError(str(e)) from e
        finally:
            conn.close()

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PlanStoreError(f"cannot open plan db {self._db_path}: {e}") from e
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            logger.error("PlanItemStore transaction rolled back: %s", e)
            raise PlanStoreError(str(e)) from e
        except BaseException:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS plan_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    week_start TEXT NOT NULL,
                    day_index INTEGER NOT NULL,
                    item_order INTEGER NOT NULL DEFAULT 0,
                    planned_hours REAL NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(plan_items)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE plan_items ADD COLUMN {name} {decl}")
                logger.info("PlanItemStore migration: added column %s", name)

            add_col("item_order", "INTEGER NOT NULL DEFAULT 0")
            add_col("planned_hours", "REAL NOT NULL DEFAULT 1")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_plan_items_column "
                "ON plan_items(week_start, day_index, item_order)"
            )

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> PlanItem:
        return PlanItem(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            week_start=str(row["week_start"]),
            day_index=int(row["day_index"]),
            order=int(row["item_order"]),
            planned_hours=float(row["planned_hours"]),
            created_at=float(row["created_at"] or 0.0),
        )

    def _fetch_item(self, conn: sqlite3.Connection, item_id: int) -> PlanItem | None:
        row = conn.execute("SELECT * FROM plan_items WHERE id = ?", (int(item_id),)).fetchone()
        return self._row_to_item(row) if row else None

    @staticmethod
    def _column_ids(conn: sqlite3.Connection, week_start: str, day_index: int) -> list[int]:
        rows = conn.execute(
            """
            SELECT id
            FROM plan_items
            WHERE week_start = ? AND day_index = ?
            ORDER BY item_order ASC, id ASC
            """,
            (week_start, int(day_index)),
        ).fetchall()
        return [int(r["id"]) for r in rows]

    @staticmethod
    def _renumber(conn: sqlite3.Connection, ordered_ids: Sequence[int]) -> None:
        conn.executemany(
            "UPDATE plan_items SET item_order = ? WHERE id = ? AND item_order != ?",
            [(i, int(item_id), i) for i, item_id in enumerate(ordered_ids)],
        )

    def _compact(self, conn: sqlite3.Connection, week_start: str, day_index: int) -> None:
        self._renumber(conn, self._column_ids(conn, week_start, day_index))

    def _apply_move(
            self,
            conn: sqlite3.Connection,
            item: PlanItem,
            to_day_index: int,
            new_order: int,
    ) -> bool:
        if item.day_index == to_day_index and item.order == new_order:
            return False

        if item.day_index == to_day_index:
            ids = self._column_ids(conn, item.week_start, to_day_index)
            ids.remove(item.id)
            ids.insert(min(new_order, len(ids)), item.id)
            self._renumber(conn, ids)
            logger.debug("Plan item %s reordered to %s in day %s", item.id, new_order, to_day_index)
            return True

        # Make room in the target column, then place the item before its new sibling.
        conn.execute(
            """
            UPDATE plan_items
            SET item_order = item_order + 1
            WHERE week_start = ?
              AND day_index = ?
              AND item_order >= ?
              AND id != ?
            """,
            (item.week_start, int(to_day_index), int(new_order), item.id),
        )
        conn.execute(
            "UPDATE plan_items SET day_index = ?, item_order = ? WHERE id = ?",
            (int(to_day_index), int(new_order), item.id),
        )
        self._compact(conn, item.week_start, item.day_index)
        self._compact(conn, item.week_start, to_day_index)
        logger.debug(
            "Plan item %s moved day %s -> %s order=%s",
            item.id,
            item.day_index,
            to_day_index,
            new_order,
        )
        return True

    # ---- public API: reads ----

    def count_items(self) -> int:
        with self._read() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM plan_items").fetchone()
            return int(n)

    def get_item(self, item_id: int) -> PlanItem | None:
        with self._read() as conn:
            return self._fetch_item(conn, item_id)

    def fetch_by_week(self, week_start: str) -> list[PlanItem]:
        ws = parse_week_start(week_start)
        with self._read() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM plan_items
                WHERE week_start = ?
                ORDER BY day_index ASC, item_order ASC, id ASC
                """,
                (ws,),
            ).fetchall()
            return [self._row_to_item(r) for r in rows]

    def fetch_by_week_starts(self, week_starts: Iterable[str]) -> list[PlanItem]:
        """Items of several weeks at once (month view)."""
        keys = sorted({parse_week_start(ws) for ws in week_starts})
        if not keys:
            return []
        placeholders = ",".join("?" for _ in keys)
        with self._read() as conn:
            rows = conn.execute(
                f"""
                SELECT *
                FROM plan_items
                WHERE week_start IN ({placeholders})
                ORDER BY week_start ASC, day_index ASC, item_order ASC, id ASC
                """,
                keys,
            ).fetchall()
            return [self._row_to_item(r) for r in rows]

    # ---- public API: mutations ----

    def create(
            self,
            *,
            task_id: int,
            week_start: str,
            day_index: int,
            planned_hours: float,
    ) -> int:
        """Insert a new item at the end of its column and return its id."""
        if not isinstance(task_id, int) or isinstance(task_id, bool):
            raise InvalidPlanItemError(f"task_id must be an integer, got {task_id!r}")
        ws = parse_week_start(week_start)
        day = validate_day_index(day_index)
        hours = validate_planned_hours(planned_hours)

        with self._transaction() as conn:
            (max_order,) = conn.execute(
                "SELECT MAX(item_order) FROM plan_items WHERE week_start = ? AND day_index = ?",
                (ws, day),
            ).fetchone()
            order = -1 if max_order is None else int(max_order)
            cur = conn.execute(
                """
                INSERT INTO plan_items(task_id, week_start, day_index, item_order, planned_hours, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (task_id, ws, day, order + 1, hours, time.time()),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for plan_items insert")
            item_id = int(rowid)

        logger.debug(
            "Plan item added id=%s task=%s week=%s day=%s order=%s hours=%s",
            item_id,
            task_id,
            ws,
            day,
            order + 1,
            hours,
        )
        return item_id

    def delete(self, item_id: int) -> bool:
        """
        Remove an item from the board and close the gap it leaves.

        Returns False if the id is unknown (removal is idempotent).
        """
        with self._transaction() as conn:
            item = self._fetch_item(conn, item_id)
            if item is None:
                return False
            conn.execute("DELETE FROM plan_items WHERE id = ?", (item.id,))
            self._compact(conn, item.week_start, item.day_index)
        logger.debug("Plan item %s removed from week=%s day=%s", item.id, item.week_start, item.day_index)
        return True

    def update_hours(self, item_id: int, planned_hours: float) -> None:
        hours = validate_planned_hours(planned_hours)
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE plan_items SET planned_hours = ? WHERE id = ?",
                (hours, int(item_id)),
            )
            if cur.rowcount != 1:
                raise PlanItemNotFoundError(int(item_id))
        logger.debug("Plan item %s hours -> %s", item_id, hours)

    def move_item(self, item_id: int, *, to_day_index: int, new_order: int) -> bool:
        """
        Place an item at (to_day_index, new_order) within its week.

        Cross-column: siblings at or after new_order in the target column shift
        down by one, then both columns are compacted. Same column: array-move
        semantics. Returns False when the assignment is unchanged.
        """
        day = validate_day_index(to_day_index)
        order = validate_order(new_order)
        with self._transaction() as conn:
            item = self._fetch_item(conn, item_id)
            if item is None:
                raise PlanItemNotFoundError(int(item_id))
            return self._apply_move(conn, item, day, order)

    def update_assignment(
            self,
            item_id: int,
            *,
            day_index: int | None = None,
            order: int | None = None,
    ) -> bool:
        """
        Partial assignment update.

        - day only: append to the end of the new column
        - order only: reposition inside the current column
        - both: same as move_item()
        """
        day = None if day_index is None else validate_day_index(day_index)
        new_order = None if order is None else validate_order(order)

        with self._transaction() as conn:
            item = self._fetch_item(conn, item_id)
            if item is None:
                raise PlanItemNotFoundError(int(item_id))

            target_day = item.day_index if day is None else day
            if new_order is None:
                if target_day == item.day_index:
                    return False
                new_order = len(self._column_ids(conn, item.week_start, target_day))
            return self._apply_move(conn, item, target_day, new_order)

    def reorder_column(self, week_start: str, day_index: int, ordered_ids: Sequence[int]) -> None:
        """
        Persist a full column sequence as 0..n-1.

        `ordered_ids` must contain every item of the column exactly once.
        """
        ws = parse_week_start(week_start)
        day = validate_day_index(day_index)
        ids = [int(i) for i in ordered_ids]
        if len(set(ids)) != len(ids):
            raise InvalidPlanItemError(f"duplicate ids in column order: {ids}")

        with self._transaction() as conn:
            current = self._column_ids(conn, ws, day)
            if set(current) != set(ids):
                raise InvalidPlanItemError(
                    f"column {ws}/{day} holds {sorted(current)}, got order for {sorted(ids)}"
                )
            self._renumber(conn, ids)
        logger.debug("Column %s/%s reordered: %s", ws, day, ids)
