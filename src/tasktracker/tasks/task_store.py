# src/tasktracker/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from pathlib import Path

from ..core.errors import ForeignKeyError, PersistenceError, ValidationError
from .ordering import next_order_index, positions
from .status_policy import dates_for_new_task, stamp_dates
from .task_models import (
    Priority,
    Project,
    Task,
    TaskFields,
    TaskSearchHit,
    TaskStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 20

_TS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class TaskStore:
    """
    SQLite store for projects and tasks.

    The schema is created on first run and migrated additively:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Connections:
    - each method opens its own short-lived connection
    - foreign_keys=ON is set on every connection (cascade deletes depend on it)
    - every method runs in a single commit-or-rollback scope
    """

    def __init__(self, db_path: str | Path = "tasktracker.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._closed = False
        self._ensure_schema()
        logger.info(
            "TaskStore ready db=%s projects=%s",
            self._db_path,
            self.count_projects(),
        )

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Shutdown hook. Later calls fail with PersistenceError."""
        if not self._closed:
            logger.debug("TaskStore closed db=%s", self._db_path)
        self._closed = True

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        if self._closed:
            raise PersistenceError("Task store is closed.")
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
            conn.row_factory = sqlite3.Row
            self._configure_conn(conn)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self._db_path}: {e}") from e
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    @contextlib.contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "FOREIGN KEY" in str(e).upper():
                raise ForeignKeyError("Referenced project does not exist.") from e
            raise PersistenceError(f"Database constraint failed: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("SQLite error on %s: %s", self._db_path, e)
            raise PersistenceError(f"Database error: {e}") from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._tx() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS projects (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    order_index INTEGER,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    project_id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'Not Started',
                    blocker TEXT,
                    priority TEXT DEFAULT 'Medium',
                    assigned_date TEXT DEFAULT CURRENT_TIMESTAMP,
                    start_date TEXT,
                    end_date TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
                )
                """
            )

            # Migrations (safe): databases from before manual ordering lack order_index.
            cur.execute("PRAGMA table_info(projects)")
            cols = {row["name"] for row in cur.fetchall()}
            if "order_index" not in cols:
                cur.execute("ALTER TABLE projects ADD COLUMN order_index INTEGER")
                cur.execute("SELECT id FROM projects ORDER BY created_at ASC, id ASC")
                ids = [int(r["id"]) for r in cur.fetchall()]
                cur.executemany(
                    "UPDATE projects SET order_index = ? WHERE id = ?",
                    positions(ids),
                )
                logger.info("TaskStore migration: added order_index (%d projects backfilled)", len(ids))

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at)")

    @staticmethod
    def _ts_to_db(value: datetime | None) -> str | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).strftime(_TS_FORMAT)

    @staticmethod
    def _db_to_ts(raw: str | None) -> datetime | None:
        if not raw:
            return None
        try:
            value = datetime.fromisoformat(str(raw).strip())
        except ValueError:
            logger.debug("Unparseable timestamp in DB: %r", raw)
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value

    @staticmethod
    def _clean_text(value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    def _row_to_project(self, row: sqlite3.Row) -> Project:
        return Project(
            id=int(row["id"]),
            name=str(row["name"] or ""),
            order_index=int(row["order_index"] or 0),
            created_at=self._db_to_ts(row["created_at"]),
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        keys = row.keys()
        return Task(
            id=int(row["id"]),
            project_id=int(row["project_id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            status=TaskStatus.from_db(row["status"]),
            priority=Priority.from_db(row["priority"]),
            blocker=row["blocker"],
            assigned_date=self._db_to_ts(row["assigned_date"]),
            start_date=self._db_to_ts(row["start_date"]),
            end_date=self._db_to_ts(row["end_date"]),
            created_at=self._db_to_ts(row["created_at"]),
            updated_at=self._db_to_ts(row["updated_at"]),
            project_name=row["project_name"] if "project_name" in keys else None,
        )

    @staticmethod
    def _require_name(name: str | None, what: str) -> str:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError(f"{what} is required.")
        return clean

    # ---- projects ----

    def count_projects(self) -> int:
        with self._tx() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM projects").fetchone()
            return int(n)

    def list_projects(self) -> list[Project]:
        with self._tx() as conn:
            rows = conn.execute(
                """
                SELECT id, name, order_index, created_at
                FROM projects
                ORDER BY COALESCE(order_index, 0) ASC, created_at ASC, id ASC
                """
            ).fetchall()
            return [self._row_to_project(r) for r in rows]

    def get_project(self, project_id: int) -> Project | None:
        with self._tx() as conn:
            row = conn.execute(
                "SELECT id, name, order_index, created_at FROM projects WHERE id = ?",
                (int(project_id),),
            ).fetchone()
            return self._row_to_project(row) if row else None

    def create_project(self, name: str) -> Project:
        clean = self._require_name(name, "Project name")
        now = self._ts_to_db(utc_now())

        with self._tx() as conn:
            cur = conn.cursor()
            cur.execute("SELECT order_index FROM projects")
            order_index = next_order_index(r["order_index"] for r in cur.fetchall())
            cur.execute(
                "INSERT INTO projects(name, order_index, created_at) VALUES (?, ?, ?)",
                (clean, order_index, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise PersistenceError("SQLite did not return lastrowid for projects insert")
            project_id = int(rowid)

        logger.info("Project created id=%s name=%r order_index=%s", project_id, clean, order_index)
        return Project(
            id=project_id,
            name=clean,
            order_index=order_index,
            created_at=self._db_to_ts(now),
        )

    def rename_project(self, project_id: int, name: str) -> bool:
        clean = self._require_name(name, "Project name")
        with self._tx() as conn:
            cur = conn.execute(
                "UPDATE projects SET name = ? WHERE id = ?",
                (clean, int(project_id)),
            )
            return cur.rowcount == 1

    def delete_project(self, project_id: int) -> bool:
        """Delete a project and (via ON DELETE CASCADE) all of its tasks. Missing id is a no-op."""
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM projects WHERE id = ?", (int(project_id),))
            deleted = cur.rowcount == 1
        if deleted:
            logger.info("Project deleted id=%s", project_id)
        return deleted

    def renumber_project_order(self, ordered_ids: Sequence[int]) -> None:
        """
        Persist a full display order: order_index = position for every id.

        All rows are written in one transaction, so a failure leaves the
        previous order intact.
        """
        pairs = positions(ordered_ids)
        if not pairs:
            return
        with self._tx() as conn:
            conn.executemany("UPDATE projects SET order_index = ? WHERE id = ?", pairs)
        logger.debug("Project order renumbered: %s", [pid for _, pid in pairs])

    # ---- tasks ----

    def count_tasks_by_project(self) -> dict[int, int]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT project_id, COUNT(*) AS n FROM tasks GROUP BY project_id"
            ).fetchall()
            return {int(r["project_id"]): int(r["n"]) for r in rows}

    def list_tasks_by_project(self, project_id: int) -> list[Task]:
        with self._tx() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE project_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (int(project_id),),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def list_all_tasks(self) -> list[Task]:
        """Every task with its project name, in sidebar order then newest first."""
        with self._tx() as conn:
            rows = conn.execute(
                """
                SELECT t.*, p.name AS project_name
                FROM tasks t
                JOIN projects p ON p.id = t.project_id
                ORDER BY COALESCE(p.order_index, 0) ASC, p.created_at ASC, p.id ASC,
                         t.created_at DESC, t.id DESC
                """
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def get_task(self, task_id: int) -> Task | None:
        with self._tx() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def create_task(
        self,
        project_id: int,
        fields: TaskFields,
        *,
        now: datetime | None = None,
    ) -> Task:
        """
        Insert a task into `project_id`.

        start/end dates come from the status policy (as if moving out of
        "Not Started"); assigned_date defaults to now.
        """
        title = self._require_name(fields.title, "Title")
        if now is None:
            now = utc_now()
        stamps = dates_for_new_task(fields.status, now)
        now_s = self._ts_to_db(now)

        with self._tx() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    project_id, title, description, status, priority, blocker,
                    assigned_date, start_date, end_date, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(project_id),
                    title,
                    self._clean_text(fields.description),
                    fields.status.value,
                    fields.priority.value,
                    self._clean_text(fields.blocker),
                    self._ts_to_db(fields.assigned_date) or now_s,
                    self._ts_to_db(stamps.start_date),
                    self._ts_to_db(stamps.end_date),
                    now_s,
                    now_s,
                ),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise PersistenceError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()

        logger.debug(
            "Task added id=%s project_id=%s status=%s",
            task_id,
            project_id,
            fields.status.value,
        )
        return self._row_to_task(row)

    def update_task(self, task_id: int, fields: TaskFields) -> Task | None:
        """
        Overwrite every form field of a task; updated_at is always refreshed.

        Dates are stored exactly as given. Returns None if the task is gone.
        """
        title = self._require_name(fields.title, "Title")

        with self._tx() as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET title = ?,
                    description = ?,
                    status = ?,
                    priority = ?,
                    blocker = ?,
                    assigned_date = ?,
                    start_date = ?,
                    end_date = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    title,
                    self._clean_text(fields.description),
                    fields.status.value,
                    fields.priority.value,
                    self._clean_text(fields.blocker),
                    self._ts_to_db(fields.assigned_date),
                    self._ts_to_db(fields.start_date),
                    self._ts_to_db(fields.end_date),
                    self._ts_to_db(utc_now()),
                    int(task_id),
                ),
            )
            if cur.rowcount != 1:
                return None
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row)

    def set_task_status(
        self,
        task_id: int,
        new_status: TaskStatus,
        *,
        now: datetime | None = None,
    ) -> Task | None:
        """
        Drag-to-reclassify: change only the status, stamping start/end dates
        the first time a qualifying status is entered.
        """
        if now is None:
            now = utc_now()

        with self._tx() as conn:
            row = conn.execute(
                "SELECT start_date, end_date FROM tasks WHERE id = ?",
                (int(task_id),),
            ).fetchone()
            if row is None:
                return None

            start = self._db_to_ts(row["start_date"])
            end = self._db_to_ts(row["end_date"])
            stamps = stamp_dates(new_status, start, end, now)

            # Keep the stored text untouched unless the policy stamped it.
            start_raw = row["start_date"] if stamps.start_date == start else self._ts_to_db(stamps.start_date)
            end_raw = row["end_date"] if stamps.end_date == end else self._ts_to_db(stamps.end_date)

            conn.execute(
                """
                UPDATE tasks
                SET status = ?, start_date = ?, end_date = ?, updated_at = ?
                WHERE id = ?
                """,
                (new_status.value, start_raw, end_raw, self._ts_to_db(now), int(task_id)),
            )
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()

        logger.debug("Task %s -> %s", task_id, new_status.value)
        return self._row_to_task(row)

    def delete_task(self, task_id: int) -> bool:
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            return cur.rowcount == 1

    # ---- search ----

    @staticmethod
    def _like_pattern(substring: str) -> str:
        escaped = substring.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"

    def search_tasks(self, substring: str, limit: int = SEARCH_LIMIT) -> list[TaskSearchHit]:
        """
        Title substring search across all projects (LIKE: ASCII case-insensitive).

        Queries shorter than MIN_SEARCH_LENGTH are not executed.
        """
        if len(substring or "") < MIN_SEARCH_LENGTH:
            return []

        with self._tx() as conn:
            rows = conn.execute(
                """
                SELECT t.id, t.project_id, t.title, t.status, t.priority, t.created_at,
                       p.name AS project_name
                FROM tasks t
                JOIN projects p ON p.id = t.project_id
                WHERE t.title LIKE ? ESCAPE '\\'
                ORDER BY t.created_at DESC, t.id DESC
                LIMIT ?
                """,
                (self._like_pattern(substring), int(limit)),
            ).fetchall()

        return [
            TaskSearchHit(
                task_id=int(r["id"]),
                project_id=int(r["project_id"]),
                title=str(r["title"] or ""),
                status=TaskStatus.from_db(r["status"]),
                priority=Priority.from_db(r["priority"]),
                project_name=str(r["project_name"] or ""),
                created_at=self._db_to_ts(r["created_at"]),
            )
            for r in rows
        ]
