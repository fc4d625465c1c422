"""SQLite-backed remote store.

Mirrors the hosted schema (people, relationships, blocks) in a local file
so the CLI and offline sessions have a durable backend. Relationship rows
carry a ``fingerprint`` column with a UNIQUE constraint; a duplicate
insert resolves to the existing row id.
"""
from __future__ import annotations

import asyncio
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import structlog

from ..errors import EdgeNotFoundError, PersonNotFoundError, RemoteAuthorizationError
from ..models.edge import RelationshipEdge, StoredEdge
from ..models.identifiers import uuid7
from ..models.person import Person, PersonChanges, PersonDraft
from ..models.records import BlockRecord
from .base import RemotePersistenceAdapter
from .mappers import (
    PEOPLE_COLUMNS,
    block_from_row,
    changes_to_row,
    edge_from_row,
    edge_to_row,
    person_from_row,
    person_to_row,
)

logger = structlog.get_logger(__name__)


class SQLiteRemoteStore(RemotePersistenceAdapter):
    """SQLite implementation of the remote persistence contract.

    Blocking sqlite3 calls run in a worker thread via ``asyncio.to_thread``;
    each call opens its own connection.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _get_conn(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        # Enforce PRAGMAs per-connection
        conn.execute("PRAGMA foreign_keys=ON;")
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA busy_timeout=5000;")
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_conn() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS people (
                    user_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    birth_date TEXT,
                    death_date TEXT,
                    gender TEXT,
                    photo_url TEXT,
                    bio TEXT,
                    phone_number TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    created_by TEXT,
                    updated_by TEXT,
                    version INTEGER NOT NULL DEFAULT 1,
                    linked_auth_user_id TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_people_account ON people(linked_auth_user_id);

                CREATE TABLE IF NOT EXISTS relationships (
                    id TEXT PRIMARY KEY,
                    person_one_id TEXT NOT NULL,
                    person_two_id TEXT NOT NULL,
                    relationship_type TEXT NOT NULL,
                    fingerprint TEXT NOT NULL UNIQUE,
                    created_by TEXT,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (person_one_id) REFERENCES people(user_id),
                    FOREIGN KEY (person_two_id) REFERENCES people(user_id)
                );

                CREATE INDEX IF NOT EXISTS idx_rel_one ON relationships(person_one_id);
                CREATE INDEX IF NOT EXISTS idx_rel_two ON relationships(person_two_id);

                CREATE TABLE IF NOT EXISTS blocks (
                    blocker_id TEXT NOT NULL,
                    blocked_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (blocker_id, blocked_id)
                );
                """
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Synchronous implementations
    # ------------------------------------------------------------------

    def _fetch_all_people(self) -> list[Person]:
        with self._get_conn() as conn:
            cols = ", ".join(PEOPLE_COLUMNS)
            rows = conn.execute(f"SELECT {cols} FROM people ORDER BY created_at").fetchall()
        return [person_from_row(dict(r)) for r in rows]

    def _fetch_all_edges(self) -> list[StoredEdge]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT id, person_one_id, person_two_id, relationship_type, created_by, created_at "
                "FROM relationships ORDER BY created_at, rowid"
            ).fetchall()
        return [edge_from_row(dict(r)) for r in rows]

    def _create_relationship_edge(self, actor_id: str, edge: RelationshipEdge) -> str:
        fingerprint = edge.fingerprint()
        row = edge_to_row(edge, actor_id)
        edge_id = str(uuid7())
        with self._get_conn() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO relationships "
                "(id, person_one_id, person_two_id, relationship_type, fingerprint, created_by, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    edge_id,
                    row["person_one_id"],
                    row["person_two_id"],
                    row["relationship_type"],
                    fingerprint,
                    actor_id,
                    datetime.now(UTC).isoformat(),
                ),
            )
            conn.commit()
            if cur.rowcount == 1:
                return edge_id
            existing = conn.execute(
                "SELECT id FROM relationships WHERE fingerprint = ?", (fingerprint,)
            ).fetchone()
        logger.debug("edge_exists", edge_id=existing["id"])
        return existing["id"]

    def _delete_relationship_edge(self, edge_id: str, actor_id: str) -> None:
        with self._get_conn() as conn:
            row = conn.execute("SELECT created_by FROM relationships WHERE id = ?", (edge_id,)).fetchone()
            if row is None:
                raise EdgeNotFoundError(f"Relationship not found: {edge_id}")
            if row["created_by"] != actor_id:
                raise RemoteAuthorizationError("You can only delete relationships you created")
            conn.execute("DELETE FROM relationships WHERE id = ?", (edge_id,))
            conn.commit()

    def _create_person(self, actor_id: str, draft: PersonDraft) -> Person:
        person = draft.to_person(str(uuid7()), created_by=actor_id)
        row = person_to_row(person)
        cols = ", ".join(row)
        marks = ", ".join("?" for _ in row)
        with self._get_conn() as conn:
            conn.execute(f"INSERT INTO people ({cols}) VALUES ({marks})", tuple(row.values()))
            conn.commit()
        return person

    def _get_person(self, conn: sqlite3.Connection, person_id: str) -> Person:
        cols = ", ".join(PEOPLE_COLUMNS)
        row = conn.execute(f"SELECT {cols} FROM people WHERE user_id = ?", (person_id,)).fetchone()
        if row is None:
            raise PersonNotFoundError(f"Person not found: {person_id}")
        return person_from_row(dict(row))

    def _update_person(self, actor_id: str, person_id: str, changes: PersonChanges) -> Person:
        with self._get_conn() as conn:
            current = self._get_person(conn, person_id)
            if actor_id not in (current.linked_account_id, current.created_by):
                raise RemoteAuthorizationError("You can only update profiles you own or created")
            row = changes_to_row(changes)
            row["updated_by"] = actor_id
            row["updated_at"] = datetime.now(UTC).isoformat()
            assignments = ", ".join(f"{col} = ?" for col in row)
            conn.execute(
                f"UPDATE people SET {assignments}, version = version + 1 WHERE user_id = ?",
                (*row.values(), person_id),
            )
            conn.commit()
            return self._get_person(conn, person_id)

    def _fetch_blocks(self, actor_id: str) -> list[BlockRecord]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT blocker_id, blocked_id, created_at FROM blocks WHERE blocker_id = ?", (actor_id,)
            ).fetchall()
        return [block_from_row(dict(r)) for r in rows]

    def _create_block(self, actor_id: str, blocked_account_id: str) -> BlockRecord:
        with self._get_conn() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO blocks (blocker_id, blocked_id, created_at) VALUES (?, ?, ?)",
                (actor_id, blocked_account_id, datetime.now(UTC).isoformat()),
            )
            conn.commit()
            row = conn.execute(
                "SELECT blocker_id, blocked_id, created_at FROM blocks WHERE blocker_id = ? AND blocked_id = ?",
                (actor_id, blocked_account_id),
            ).fetchone()
        return block_from_row(dict(row))

    def _delete_block(self, actor_id: str, blocked_account_id: str) -> None:
        with self._get_conn() as conn:
            conn.execute(
                "DELETE FROM blocks WHERE blocker_id = ? AND blocked_id = ?", (actor_id, blocked_account_id)
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Async adapter surface
    # ------------------------------------------------------------------

    async def fetch_all_people(self) -> list[Person]:
        return await asyncio.to_thread(self._fetch_all_people)

    async def fetch_all_edges(self) -> list[StoredEdge]:
        return await asyncio.to_thread(self._fetch_all_edges)

    async def create_relationship_edge(self, actor_id: str, edge: RelationshipEdge) -> str:
        return await asyncio.to_thread(self._create_relationship_edge, actor_id, edge)

    async def delete_relationship_edge(self, edge_id: str, actor_id: str) -> None:
        await asyncio.to_thread(self._delete_relationship_edge, edge_id, actor_id)

    async def create_person(self, actor_id: str, draft: PersonDraft) -> Person:
        return await asyncio.to_thread(self._create_person, actor_id, draft)

    async def update_person(self, actor_id: str, person_id: str, changes: PersonChanges) -> Person:
        return await asyncio.to_thread(self._update_person, actor_id, person_id, changes)

    async def fetch_blocks(self, actor_id: str) -> list[BlockRecord]:
        return await asyncio.to_thread(self._fetch_blocks, actor_id)

    async def create_block(self, actor_id: str, blocked_account_id: str) -> BlockRecord:
        return await asyncio.to_thread(self._create_block, actor_id, blocked_account_id)

    async def delete_block(self, actor_id: str, blocked_account_id: str) -> None:
        await asyncio.to_thread(self._delete_block, actor_id, blocked_account_id)
