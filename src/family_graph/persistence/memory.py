"""In-memory remote store for tests and offline sessions."""
from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import structlog

from ..errors import EdgeNotFoundError, PersonNotFoundError, RemoteAuthorizationError
from ..models.edge import RelationshipEdge, StoredEdge
from ..models.identifiers import uuid7
from ..models.person import Person, PersonChanges, PersonDraft
from ..models.records import BlockRecord
from .base import RemotePersistenceAdapter

logger = structlog.get_logger(__name__)


class InMemoryRemoteStore(RemotePersistenceAdapter):
    """Dict-backed store with the same contract as the hosted backend.

    Example:
        >>> store = InMemoryRemoteStore()
        >>> person = await store.create_person("acct-1", PersonDraft(name="Ruth"))
        >>> edge_id = await store.create_relationship_edge(
        ...     "acct-1", RelationshipEdge.parent(person.id, other.id)
        ... )
    """

    def __init__(self, people: list[Person] | None = None, latency: float = 0.0) -> None:
        self.people: dict[str, Person] = {p.id: p for p in people or []}
        self.edges: dict[str, StoredEdge] = {}
        self.blocks: dict[tuple[str, str], BlockRecord] = {}
        self._by_fingerprint: dict[str, str] = {}
        self.latency = latency

    async def _io(self) -> None:
        # simulated network round trip
        await asyncio.sleep(self.latency)

    async def fetch_all_people(self) -> list[Person]:
        await self._io()
        return list(self.people.values())

    async def fetch_all_edges(self) -> list[StoredEdge]:
        await self._io()
        return list(self.edges.values())

    async def create_relationship_edge(self, actor_id: str, edge: RelationshipEdge) -> str:
        await self._io()
        fingerprint = edge.fingerprint()
        existing = self._by_fingerprint.get(fingerprint)
        if existing is not None:
            logger.debug("edge_exists", edge_id=existing)
            return existing

        edge_id = str(uuid7())
        self.edges[edge_id] = StoredEdge(edge_id=edge_id, edge=edge, created_by=actor_id)
        self._by_fingerprint[fingerprint] = edge_id
        return edge_id

    async def delete_relationship_edge(self, edge_id: str, actor_id: str) -> None:
        await self._io()
        stored = self.edges.get(edge_id)
        if stored is None:
            raise EdgeNotFoundError(f"Relationship not found: {edge_id}")
        if stored.created_by != actor_id:
            raise RemoteAuthorizationError("You can only delete relationships you created")
        del self.edges[edge_id]
        self._by_fingerprint.pop(stored.edge.fingerprint(), None)

    async def create_person(self, actor_id: str, draft: PersonDraft) -> Person:
        await self._io()
        person = draft.to_person(str(uuid7()), created_by=actor_id)
        self.people[person.id] = person
        return person

    async def update_person(self, actor_id: str, person_id: str, changes: PersonChanges) -> Person:
        await self._io()
        current = self.people.get(person_id)
        if current is None:
            raise PersonNotFoundError(f"Person not found: {person_id}")
        if actor_id not in (current.linked_account_id, current.created_by):
            raise RemoteAuthorizationError("You can only update profiles you own or created")
        updated = current.touch(updated_by=actor_id, **changes.as_update())
        self.people[person_id] = updated
        return updated

    async def fetch_blocks(self, actor_id: str) -> list[BlockRecord]:
        await self._io()
        return [b for (blocker, _), b in self.blocks.items() if blocker == actor_id]

    async def create_block(self, actor_id: str, blocked_account_id: str) -> BlockRecord:
        await self._io()
        key = (actor_id, blocked_account_id)
        if key not in self.blocks:
            self.blocks[key] = BlockRecord(
                blocker_id=actor_id,
                blocked_id=blocked_account_id,
                created_at=datetime.now(UTC),
            )
        return self.blocks[key]

    async def delete_block(self, actor_id: str, blocked_account_id: str) -> None:
        await self._io()
        self.blocks.pop((actor_id, blocked_account_id), None)
