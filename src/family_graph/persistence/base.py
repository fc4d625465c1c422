"""Remote persistence adapter interface.

The hosted store is reached only through this small CRUD surface. Every
implementation must treat ``create_relationship_edge`` as an idempotent
upsert keyed by ``RelationshipEdge.fingerprint()``: a duplicate create
returns the id of the existing row instead of failing, because clients
retry.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.edge import RelationshipEdge, StoredEdge
from ..models.person import Person, PersonChanges, PersonDraft
from ..models.records import BlockRecord


class RemotePersistenceAdapter(ABC):
    """Abstract base class for remote stores."""

    @abstractmethod
    async def fetch_all_people(self) -> list[Person]:
        """All people visible to the session (adjacency left empty)."""
        ...

    @abstractmethod
    async def fetch_all_edges(self) -> list[StoredEdge]:
        """All relationship rows."""
        ...

    @abstractmethod
    async def create_relationship_edge(self, actor_id: str, edge: RelationshipEdge) -> str:
        """Persist an edge attributed to ``actor_id``; return its id."""
        ...

    @abstractmethod
    async def delete_relationship_edge(self, edge_id: str, actor_id: str) -> None:
        """Delete an edge. Only the account that created it may delete it."""
        ...

    @abstractmethod
    async def create_person(self, actor_id: str, draft: PersonDraft) -> Person:
        """Create a person and return it with its server-assigned id."""
        ...

    @abstractmethod
    async def update_person(self, actor_id: str, person_id: str, changes: PersonChanges) -> Person:
        """Apply a profile edit and return the stored person."""
        ...

    @abstractmethod
    async def fetch_blocks(self, actor_id: str) -> list[BlockRecord]:
        """Blocks created by ``actor_id``."""
        ...

    @abstractmethod
    async def create_block(self, actor_id: str, blocked_account_id: str) -> BlockRecord:
        ...

    @abstractmethod
    async def delete_block(self, actor_id: str, blocked_account_id: str) -> None:
        ...

    async def fetch_blocked_account_ids(self, actor_id: str) -> set[str]:
        """Account ids blocked by ``actor_id``."""
        return {block.blocked_id for block in await self.fetch_blocks(actor_id)}

    async def find_edge(self, edge: RelationshipEdge) -> StoredEdge | None:
        """The stored row matching ``edge`` (by fingerprint), if any."""
        fingerprint = edge.fingerprint()
        for stored in await self.fetch_all_edges():
            if stored.edge.fingerprint() == fingerprint:
                return stored
        return None

    async def close(self) -> None:
        """Release resources held by the adapter."""
        return None
