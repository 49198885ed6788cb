import sqlite3
import aiosqlite
import datetime
import json
import uuid
from contextlib import contextmanager, asynccontextmanager
from typing import Callable, List, Tuple, Optional


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def to_timestamp(value: datetime.datetime) -> str:
    """Return ``value`` as a UTC ISO-8601 string with millisecond precision.

    Naive datetimes are taken to be UTC. All stored timestamps use this
    format so that string order matches chronological order.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc).isoformat(timespec="milliseconds")


def now_timestamp() -> str:
    return to_timestamp(utc_now())


def parse_timestamp(ts: str) -> datetime.datetime:
    """Return ``ts`` as timezone-aware datetime in UTC."""
    dt = datetime.datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Increment:
    """Field change that adds ``amount`` to the current numeric value."""

    def __init__(self, amount: int | float = 1) -> None:
        self.amount = amount


class WriteConflict(Exception):
    """Raised when a conditional write finds the document in another state."""


def apply_changes(doc: dict, changes: dict) -> dict:
    """Apply ``changes`` to ``doc`` in place and return it.

    Keys may be dotted paths (``"stats.currentStreak"``); intermediate maps
    are created as needed. ``Increment`` values add to the existing number.
    """
    for key, value in changes.items():
        parts = key.split(".")
        target = doc
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        leaf = parts[-1]
        if isinstance(value, Increment):
            target[leaf] = (target.get(leaf) or 0) + value.amount
        else:
            target[leaf] = value
    return doc


def check_expected(doc: dict, expect: Optional[dict]) -> None:
    if not expect:
        return
    for key, value in expect.items():
        if doc.get(key) != value:
            raise WriteConflict(f"{key} is {doc.get(key)!r}, expected {value!r}")


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    data TEXT NOT NULL
                );""",
            ["id", "email", "data"],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id TEXT PRIMARY KEY,
                    type TEXT NOT NULL DEFAULT 'custom',
                    created_by TEXT,
                    plan_name TEXT NOT NULL,
                    data TEXT NOT NULL
                );""",
            ["id", "type", "created_by", "plan_name", "data"],
        ),
        "userWorkouts": (
            """CREATE TABLE userWorkouts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    plan_id TEXT NOT NULL,
                    day_index INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    date_completed TEXT,
                    data TEXT NOT NULL
                );""",
            [
                "id",
                "user_id",
                "plan_id",
                "day_index",
                "status",
                "date_completed",
                "data",
            ],
        ),
    }

    _INDEX_DEFINITIONS = [
        "CREATE INDEX IF NOT EXISTS idx_workouts_creator ON workouts (created_by, type, plan_name);",
        "CREATE INDEX IF NOT EXISTS idx_workouts_type ON workouts (type, plan_name);",
        "CREATE INDEX IF NOT EXISTS idx_sessions_completed ON userWorkouts (user_id, status, date_completed);",
        "CREATE INDEX IF NOT EXISTS idx_sessions_day ON userWorkouts (user_id, plan_id, day_index, status, date_completed);",
    ]

    def __init__(self, db_path: str = "fitbase.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path, timeout=30)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            for sql in self._INDEX_DEFINITIONS:
                conn.execute(sql)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "type":
                        return "'custom'"
                    if col == "data":
                        return "'{}'"
                    if col == "day_index":
                        return "0"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def batch(self) -> "WriteBatch":
        return WriteBatch(self)


class WriteBatch:
    """Collects document updates and applies them in a single transaction.

    Either every queued update is committed or, when any of them raises
    (for instance a ``WriteConflict``), none is.
    """

    def __init__(self, database: Database) -> None:
        self._database = database
        self._ops: list[Callable[[sqlite3.Connection], None]] = []

    def update(
        self,
        repo: "DocumentRepository",
        doc_id: str,
        changes: dict | Callable[[dict], dict],
        expect: Optional[dict] = None,
    ) -> "WriteBatch":
        """Queue an update; callable ``changes`` receive the current document."""
        self._ops.append(lambda conn: repo._update_in(conn, doc_id, changes, expect))
        return self

    def commit(self) -> None:
        with self._database._connection() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            for op in self._ops:
                op(conn)
        self._ops = []


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.rowcount

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class DocumentRepository(BaseRepository):
    """Stores JSON documents with a few indexed columns per collection."""

    table = ""

    def _index_values(self, doc: dict) -> dict:
        return {}

    @staticmethod
    def _to_doc(row: Tuple) -> dict:
        doc_id, data = row
        return {"id": doc_id, **json.loads(data)}

    @staticmethod
    def _strip_id(doc: dict) -> dict:
        return {k: v for k, v in doc.items() if k != "id"}

    def add(self, doc: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or new_id()
        body = self._strip_id(doc)
        values = {"id": doc_id, **self._index_values(body), "data": json.dumps(body)}
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        self.execute(
            f"INSERT INTO {self.table} ({cols}) VALUES ({marks});",
            tuple(values.values()),
        )
        return doc_id

    def fetch(self, doc_id: str) -> Optional[dict]:
        rows = self.fetch_all(
            f"SELECT id, data FROM {self.table} WHERE id = ?;", (doc_id,)
        )
        return self._to_doc(rows[0]) if rows else None

    def _fetch_docs(self, where: str, params: Tuple = (), suffix: str = "") -> List[dict]:
        rows = self.fetch_all(
            f"SELECT id, data FROM {self.table} WHERE {where} {suffix};", params
        )
        return [self._to_doc(r) for r in rows]

    def _write_in(self, conn: sqlite3.Connection, doc_id: str, body: dict) -> None:
        values = {**self._index_values(body), "data": json.dumps(body)}
        assignments = ", ".join(f"{c} = ?" for c in values)
        conn.execute(
            f"UPDATE {self.table} SET {assignments} WHERE id = ?;",
            (*values.values(), doc_id),
        )

    def _update_in(
        self,
        conn: sqlite3.Connection,
        doc_id: str,
        changes: dict,
        expect: Optional[dict] = None,
    ) -> dict:
        row = conn.execute(
            f"SELECT data FROM {self.table} WHERE id = ?;", (doc_id,)
        ).fetchone()
        if row is None:
            raise WriteConflict(f"{self.table}/{doc_id} does not exist")
        body = json.loads(row[0])
        check_expected(body, expect)
        if callable(changes):
            changes = changes({"id": doc_id, **body})
        apply_changes(body, changes)
        self._write_in(conn, doc_id, body)
        return {"id": doc_id, **body}

    def update(self, doc_id: str, changes: dict, expect: Optional[dict] = None) -> dict:
        """Merge ``changes`` into the stored document and return the result."""
        with self._connection() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            return self._update_in(conn, doc_id, changes, expect)

    def replace(self, doc_id: str, doc: dict) -> None:
        with self._connection() as conn:
            self._write_in(conn, doc_id, self._strip_id(doc))

    def delete(self, doc_id: str) -> None:
        if not self.execute(f"DELETE FROM {self.table} WHERE id = ?;", (doc_id,)):
            raise ValueError(f"{self.table}/{doc_id} not found")


class UserRepository(DocumentRepository):
    """Repository for user account documents."""

    table = "users"

    def _index_values(self, doc: dict) -> dict:
        return {"email": doc["email"].strip().lower()}

    def fetch_by_email(self, email: str) -> Optional[dict]:
        docs = self._fetch_docs(
            "email = ?", (email.strip().lower(),), "LIMIT 1"
        )
        return docs[0] if docs else None


class WorkoutPlanRepository(DocumentRepository):
    """Repository for workout plan documents."""

    table = "workouts"

    def _index_values(self, doc: dict) -> dict:
        return {
            "type": doc.get("type", "custom"),
            "created_by": doc.get("createdBy"),
            "plan_name": doc.get("planName", ""),
        }

    def fetch_common(self) -> List[dict]:
        return self._fetch_docs("type = 'common'", (), "ORDER BY plan_name ASC")

    def fetch_by_creator(self, uid: str) -> List[dict]:
        return self._fetch_docs("created_by = ?", (uid,), "ORDER BY plan_name ASC")

    def count_custom(self, uid: str) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(*) FROM workouts WHERE created_by = ? AND type = 'custom';",
            (uid,),
        )
        return int(rows[0][0])

    def fetch_by_name(self, plan_name: str, plan_type: str = "common") -> Optional[dict]:
        docs = self._fetch_docs(
            "plan_name = ? AND type = ?", (plan_name, plan_type), "LIMIT 1"
        )
        return docs[0] if docs else None


class WorkoutSessionRepository(DocumentRepository):
    """Repository for workout session documents."""

    table = "userWorkouts"

    def _index_values(self, doc: dict) -> dict:
        return {
            "user_id": doc["userId"],
            "plan_id": doc["planId"],
            "day_index": int(doc["dayIndex"]),
            "status": doc["status"],
            "date_completed": doc.get("dateCompleted"),
        }

    def last_completed(self, uid: str, plan_id: str, day_index: int) -> Optional[dict]:
        docs = self._fetch_docs(
            "user_id = ? AND plan_id = ? AND day_index = ? AND status = 'completed'",
            (uid, plan_id, day_index),
            "ORDER BY date_completed DESC, rowid DESC LIMIT 1",
        )
        return docs[0] if docs else None

    def fetch_completed(
        self,
        uid: str,
        limit: int | None = None,
        start_after: str | None = None,
    ) -> List[dict]:
        """Return completed sessions newest first.

        ``start_after`` is the id of a completed session; only sessions that
        sort strictly after it are returned.
        """
        where = "user_id = ? AND status = 'completed'"
        params: list = [uid]
        if start_after is not None:
            rows = self.fetch_all(
                "SELECT date_completed, rowid FROM userWorkouts WHERE id = ? AND user_id = ? AND status = 'completed';",
                (start_after, uid),
            )
            if not rows:
                raise ValueError(f"unknown cursor: {start_after}")
            completed, rowid = rows[0]
            where += " AND (date_completed < ? OR (date_completed = ? AND rowid < ?))"
            params.extend([completed, completed, rowid])
        suffix = "ORDER BY date_completed DESC, rowid DESC"
        if limit is not None:
            suffix += " LIMIT ?"
            params.append(limit)
        return self._fetch_docs(where, tuple(params), suffix)

    def fetch_completed_between(
        self,
        uid: str,
        start: str | None = None,
        end: str | None = None,
    ) -> List[dict]:
        where = "user_id = ? AND status = 'completed'"
        params: list = [uid]
        if start:
            where += " AND date_completed >= ?"
            params.append(start)
        if end:
            where += " AND date_completed <= ?"
            params.append(end)
        return self._fetch_docs(where, tuple(params), "ORDER BY date_completed ASC")


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path, timeout=30)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return list(rows)


class AsyncWorkoutSessionRepository(AsyncBaseRepository):
    """Async repository for the frequently written session documents."""

    table = "userWorkouts"

    async def fetch(self, session_id: str) -> Optional[dict]:
        rows = await self.fetch_all(
            "SELECT id, data FROM userWorkouts WHERE id = ?;", (session_id,)
        )
        return DocumentRepository._to_doc(rows[0]) if rows else None

    async def update(
        self, session_id: str, changes: dict, expect: Optional[dict] = None
    ) -> dict:
        async with self._async_connection() as conn:
            await conn.execute("BEGIN IMMEDIATE;")
            cursor = await conn.execute(
                "SELECT data FROM userWorkouts WHERE id = ?;", (session_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                raise WriteConflict(f"userWorkouts/{session_id} does not exist")
            body = json.loads(row[0])
            check_expected(body, expect)
            apply_changes(body, changes)
            await conn.execute(
                "UPDATE userWorkouts SET status = ?, date_completed = ?, data = ? WHERE id = ?;",
                (body["status"], body.get("dateCompleted"), json.dumps(body), session_id),
            )
            return {"id": session_id, **body}
