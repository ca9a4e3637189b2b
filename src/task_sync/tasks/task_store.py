# src/task_sync/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
import time
import uuid as uuid_mod
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from ..core.errors import StoreFailure, SyncInProgress
from .task_models import Task, TaskStatus, is_record_line

logger = logging.getLogger(__name__)

# One sync lock per database file, shared by every TaskStore opened on it.
_SYNC_LOCKS: dict[Path, threading.Lock] = {}
_SYNC_LOCKS_GUARD = threading.Lock()


def _sync_lock_for(db_path: Path) -> threading.Lock:
    key = db_path.resolve()
    with _SYNC_LOCKS_GUARD:
        return _SYNC_LOCKS.setdefault(key, threading.Lock())


class TaskStore:
    """
    SQLite task store + backlog.

    Two tables live in one database file so a sync can replace the backlog and
    apply server changes in a single transaction:
    - tasks:   one row per uuid, full ChangeRecord JSON in `data`
    - backlog: append-only lines (ChangeRecords or a synch key)

    Thread-safety:
    - each method opens its own SQLite connection
    - sync_guard() allows one synchronization per database file at a time
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        self.backlog = BacklogLog(self)
        self._sync_lock = _sync_lock_for(self._db_path)
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """
        One explicit write transaction. Either everything inside the block lands,
        or nothing does (rollback on any exception, including KeyboardInterrupt).
        """
        conn = self._get_conn()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    uuid TEXT PRIMARY KEY,
                    status TEXT NOT NULL DEFAULT 'pending',
                    description TEXT NOT NULL DEFAULT '',
                    data TEXT NOT NULL DEFAULT '{}',
                    modified REAL NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS backlog (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    line TEXT NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        try:
            data = json.loads(row["data"] or "{}")
        except json.JSONDecodeError:
            logger.warning("Corrupt task data for uuid=%s; keeping identity only.", row["uuid"])
            data = {}
        if not isinstance(data, dict):
            data = {}
        return Task(
            uuid=str(row["uuid"]),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            data=data,
        )

    @staticmethod
    def _append_line(conn: sqlite3.Connection, line: str) -> None:
        conn.execute("INSERT INTO backlog(line) VALUES (?)", (line.rstrip("\n"),))

    def _write_task(self, conn: sqlite3.Connection, task: Task, is_new: bool) -> None:
        params = (
            task.status.value,
            task.description,
            task.compose_json(),
            time.time(),
            task.uuid,
        )
        if is_new:
            conn.execute(
                "INSERT INTO tasks(status, description, data, modified, uuid) VALUES (?, ?, ?, ?, ?)",
                params,
            )
            return

        cur = conn.execute(
            "UPDATE tasks SET status = ?, description = ?, data = ?, modified = ? WHERE uuid = ?",
            params,
        )
        if cur.rowcount != 1:
            raise RuntimeError(f"task {task.uuid} vanished before update")

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        description: str,
        *,
        status: TaskStatus = TaskStatus.PENDING,
        extra: dict[str, Any] | None = None,
    ) -> Task:
        """Create a local task and record the change in the backlog."""
        if not description or not description.strip():
            raise ValueError("description is required")

        data = dict(extra or {})
        data.setdefault("entry", time.strftime("%Y%m%dT%H%M%SZ", time.gmtime()))
        task = Task(
            uuid=str(uuid_mod.uuid4()),
            description=description.strip(),
            status=status,
            data=data,
        )

        with self._transaction() as conn:
            self._write_task(conn, task, is_new=True)
            self._append_line(conn, task.compose_json())
        self.backlog.clear_lines()
        self.backlog.clear_tasks()

        logger.debug("Task added uuid=%s status=%s", task.uuid, task.status.value)
        return task

    def modify_task(self, task: Task) -> None:
        """Persist a local change to an existing task and record it in the backlog."""
        with self._transaction() as conn:
            self._write_task(conn, task, is_new=False)
            self._append_line(conn, task.compose_json())
        self.backlog.clear_lines()
        self.backlog.clear_tasks()

    def get_task(self, uuid: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE uuid = ?", (uuid,)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def has_task(self, uuid: str) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT 1 FROM tasks WHERE uuid = ?", (uuid,)).fetchone()
            return row is not None
        finally:
            conn.close()

    def pending_tasks(self) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE status = ? ORDER BY rowid ASC",
                (TaskStatus.PENDING.value,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def all_tasks(self) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM tasks ORDER BY rowid ASC").fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def backlog_lines(self) -> list[str]:
        return self.backlog.get_lines()

    def unsynced_tasks(self) -> list[Task]:
        """Task states recorded in the backlog since the last sync, oldest first."""
        return self.backlog.get_tasks()

    def current_synch_key(self) -> str:
        """Last synch key recorded in the backlog, or "" before the first sync."""
        key = ""
        for line in self.backlog.get_lines():
            if line.strip() and not is_record_line(line):
                key = line.strip()
        return key

    @contextlib.contextmanager
    def sync_guard(self) -> Iterator[None]:
        if not self._sync_lock.acquire(blocking=False):
            raise SyncInProgress("A synchronization is already running for this task store.")
        try:
            yield
        finally:
            self._sync_lock.release()

    def begin_sync(self) -> StoreSyncSession:
        return StoreSyncSession(self)


class BacklogLog:
    """
    Cached view of the backlog table.

    Lines are read once and kept until a write clears the cache.
    """

    def __init__(self, store: TaskStore) -> None:
        self._store = store
        self._lines: list[str] | None = None
        self._tasks: list[Task] | None = None

    def get_lines(self) -> list[str]:
        if self._lines is None:
            conn = self._store._get_conn()
            try:
                rows = conn.execute("SELECT line FROM backlog ORDER BY id ASC").fetchall()
                self._lines = [str(r["line"]) for r in rows]
            finally:
                conn.close()
        return list(self._lines)

    def get_tasks(self) -> list[Task]:
        if self._tasks is None:
            self._tasks = [Task.from_json(line) for line in self.get_lines() if is_record_line(line)]
        return list(self._tasks)

    def clear_lines(self) -> None:
        self._lines = None

    def clear_tasks(self) -> None:
        self._tasks = None

    def truncate(self, conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM backlog")

    def add_line(self, conn: sqlite3.Connection, line: str) -> None:
        self._store._append_line(conn, line)


class StoreSyncSession:
    """
    Staged view of the task store used while merging a server response.

    Nothing touches the database until commit(); an abandoned session leaves the
    store exactly as it was.
    """

    def __init__(self, store: TaskStore) -> None:
        self._store = store
        self._staged: dict[str, tuple[Task, bool]] = {}

    def exists(self, uuid: str) -> bool:
        return uuid in self._staged or self._store.has_task(uuid)

    def upsert(self, task: Task, is_new: bool) -> None:
        prev = self._staged.get(task.uuid)
        if prev is not None:
            # Same uuid twice in one response: keep the latest state, insert once.
            is_new = prev[1]
        self._staged[task.uuid] = (task, is_new)

    def commit(self, synch_key: str) -> None:
        if not synch_key:
            raise ValueError("refusing to commit without a synch key")

        backlog = self._store.backlog
        try:
            with self._store._transaction() as conn:
                backlog.truncate(conn)
                backlog.clear_lines()
                backlog.clear_tasks()
                backlog.add_line(conn, synch_key)
                for task, is_new in self._staged.values():
                    self._store._write_task(conn, task, is_new)
        except sqlite3.Error as e:
            logger.warning("Sync commit rolled back db=%s: %s", self._store.db_path, e)
            raise StoreFailure(
                f"The local task database could not be updated ({e}). Nothing was changed."
            ) from e

        logger.debug(
            "Sync committed key=%s tasks=%d db=%s",
            synch_key,
            len(self._staged),
            self._store.db_path,
        )
        self._staged.clear()

    def discard(self) -> None:
        self._staged.clear()
