"""Optimistic cache coordinator.

Every write follows the same protocol:

1. snapshot the current collection value
2. apply the change locally and publish it
3. await the remote persistence call
4. reconcile with the server response, or roll back to the snapshot

Writes to one collection are serialized through an ``asyncio.Lock`` held
across all four steps, so they apply and reconcile in submission order.
Different collections do not wait for each other. Jobs run as tasks and
callers await them through ``asyncio.shield``: cancelling a caller never
leaves a collection half reconciled.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from ..errors import EdgeNotFoundError, InvalidEdgeError, ReconciliationMismatch, RemoteWriteFailure
from ..graph.mutator import apply_edge, remove_edge
from ..graph.registry import add_person, project_registry, replace_person, swap_identifier
from ..models.edge import RelationshipEdge, RelationshipType, StoredEdge
from ..models.identifiers import ConfirmedId, PersonRef, TemporaryId, as_ref
from ..models.person import Person, PersonChanges, PersonDraft
from ..persistence.base import RemotePersistenceAdapter
from .store import PEOPLE, CollectionCache

logger = structlog.get_logger(__name__)

People = Mapping[str, Person]
Loader = Callable[[], Awaitable[Any]]


@dataclass
class Mutation:
    """One optimistic write against a single collection.

    Attributes:
        collection: Cache collection the write targets
        apply: Pure function from the current value to the optimistic value
        persist: Remote call; its return value is the job result
        reconcile: Merge ``(current, result)`` into a new value; may raise
            ``ReconciliationMismatch``
        refetch: Loader for a full reload of the collection
        refetch_after: Reload after every successful write
        label: Name used in logs and errors
    """

    collection: str
    apply: Callable[[Any], Any]
    persist: Callable[[], Awaitable[Any]]
    reconcile: Callable[[Any, Any], Any] | None = None
    refetch: Loader | None = None
    refetch_after: bool = False
    label: str = "mutation"


class OptimisticCoordinator:
    """Runs optimistic mutations against a ``CollectionCache``.

    Example:
        coordinator = OptimisticCoordinator(cache, store, actor_id="acct-1")
        temp_id, task = coordinator.add_person(PersonDraft(name="Ada"))
        await coordinator.add_relationship(RelationshipEdge.parent(temp_id.value, child_id))
        await coordinator.drain()
    """

    def __init__(
        self,
        cache: CollectionCache,
        adapter: RemotePersistenceAdapter,
        actor_id: str,
        *,
        refetch_after_graph_write: bool = False,
        people_loader: Loader | None = None,
    ) -> None:
        self.cache = cache
        self.adapter = adapter
        self.actor_id = actor_id
        self.refetch_after_graph_write = refetch_after_graph_write
        self.people_loader: Loader = people_loader or self.load_people
        self._locks: dict[str, asyncio.Lock] = {}
        self._inflight: set[asyncio.Task[Any]] = set()
        self._resolved: dict[str, ConfirmedId] = {}

    # ------------------------------------------------------------------
    # Generic machinery
    # ------------------------------------------------------------------

    def _lock_for(self, collection: str) -> asyncio.Lock:
        if collection not in self._locks:
            self._locks[collection] = asyncio.Lock()
        return self._locks[collection]

    def submit(self, mutation: Mutation) -> asyncio.Task[Any]:
        """Schedule a mutation and return its task without waiting."""
        task = asyncio.create_task(self._execute(mutation), name=f"{mutation.collection}:{mutation.label}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def run(self, mutation: Mutation) -> Any:
        """Submit a mutation and wait for it to be reconciled or rolled back."""
        return await asyncio.shield(self.submit(mutation))

    async def drain(self) -> None:
        """Wait until every submitted mutation has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._inflight)

    async def _execute(self, m: Mutation) -> Any:
        async with self._lock_for(m.collection):
            had_value = m.collection in self.cache
            snapshot = self.cache.get(m.collection)
            self.cache.set(m.collection, m.apply(snapshot))
            logger.debug("mutation_applied", collection=m.collection, label=m.label)

            try:
                result = await m.persist()
            except Exception as e:
                if had_value:
                    self.cache.set(m.collection, snapshot)
                else:
                    self.cache.invalidate(m.collection)
                logger.warning("mutation_rolled_back", collection=m.collection, label=m.label, error=str(e))
                raise RemoteWriteFailure(f"{m.label} failed: {e}", m.collection, m.label) from e

            await self._reconcile(m, result)
            logger.info("mutation_confirmed", collection=m.collection, label=m.label)
            return result

    async def _reconcile(self, m: Mutation, result: Any) -> None:
        if m.refetch_after and m.refetch is not None:
            await self._refetch(m.collection, m.refetch)
            return
        if m.reconcile is None:
            return
        try:
            self.cache.set(m.collection, m.reconcile(self.cache.get(m.collection), result))
        except ReconciliationMismatch as e:
            logger.warning("reconciliation_mismatch", collection=m.collection, label=m.label, error=str(e))
            await self._refetch(m.collection, m.refetch)

    async def _refetch(self, collection: str, loader: Loader | None) -> None:
        """Reload a collection; on failure keep the optimistic value and mark it stale."""
        if loader is None:
            self.cache.mark_stale(collection)
            return
        try:
            value = await loader()
        except Exception:
            # the write itself was confirmed; only the local copy may be behind
            logger.exception("refetch_failed", collection=collection)
            self.cache.mark_stale(collection)
            return
        self.cache.set(collection, value)
        self.cache.mark_fresh(collection)

    async def refresh(self, collection: str, loader: Loader) -> Any:
        """Load a collection in queue order with pending writes."""
        async with self._lock_for(collection):
            value = await loader()
            self.cache.set(collection, value)
            self.cache.mark_fresh(collection)
            return value

    # ------------------------------------------------------------------
    # People collection
    # ------------------------------------------------------------------

    async def load_people(self) -> dict[str, Person]:
        """Fetch people and edges and project the adjacency locally."""
        people, edges = await asyncio.gather(self.adapter.fetch_all_people(), self.adapter.fetch_all_edges())
        return project_registry(people, edges)

    def resolve(self, ref: PersonRef | str) -> ConfirmedId | None:
        """The server id for a reference, or None while creation is pending."""
        ref = as_ref(ref)
        if isinstance(ref, ConfirmedId):
            return ref
        return self._resolved.get(ref.value)

    def _resolve_id(self, person_id: str) -> str:
        confirmed = self._resolved.get(person_id)
        return confirmed.value if confirmed else person_id

    def _resolve_edge(self, edge: RelationshipEdge) -> RelationshipEdge:
        a, b = (self._resolve_id(i) for i in edge.endpoints)
        return edge if (a, b) == edge.endpoints else edge.with_ids(a, b)

    async def add_relationship(self, edge: RelationshipEdge) -> str:
        """Link two people; returns the server edge id.

        Raises:
            InvalidEdgeError: For a self relation, before the cache is touched
            RemoteWriteFailure: If the remote create failed (cache rolled back)
        """
        if edge.is_self_edge:
            raise InvalidEdgeError(edge.person_one_id, edge.relationship_type.value)

        resolved = edge

        def apply(people: People | None) -> People:
            nonlocal resolved
            resolved = self._resolve_edge(edge)
            return apply_edge(people or {}, resolved)

        async def persist() -> str:
            return await self.adapter.create_relationship_edge(self.actor_id, resolved)

        return await self.run(
            Mutation(
                collection=PEOPLE,
                apply=apply,
                persist=persist,
                refetch=self.people_loader,
                refetch_after=self.refetch_after_graph_write,
                label=f"add_{edge.relationship_type.value}",
            )
        )

    async def remove_relationship(self, edge: RelationshipEdge | StoredEdge) -> None:
        """Unlink two people and delete the stored edge row.

        Sibling removals always reload afterwards: whether the two people stay
        siblings depends on the sibling rows left on the server.
        """
        stored = edge if isinstance(edge, StoredEdge) else None
        relationship = stored.edge if stored else edge
        if relationship.is_self_edge:
            raise InvalidEdgeError(relationship.person_one_id, relationship.relationship_type.value)

        resolved = relationship

        def apply(people: People | None) -> People:
            nonlocal resolved
            resolved = self._resolve_edge(relationship)
            return remove_edge(people or {}, resolved)

        async def persist() -> None:
            target = stored or await self.adapter.find_edge(resolved)
            if target is None:
                raise EdgeNotFoundError(f"No stored {resolved.relationship_type.value} edge between {resolved.endpoints}")
            await self.adapter.delete_relationship_edge(target.edge_id, self.actor_id)

        is_sibling = relationship.relationship_type == RelationshipType.SIBLING
        await self.run(
            Mutation(
                collection=PEOPLE,
                apply=apply,
                persist=persist,
                refetch=self.people_loader,
                refetch_after=self.refetch_after_graph_write or is_sibling,
                label=f"remove_{relationship.relationship_type.value}",
            )
        )

    def add_person(self, draft: PersonDraft) -> tuple[TemporaryId, asyncio.Task[Person]]:
        """Insert a person under a temporary id and schedule its creation.

        Returns the temporary id at once together with the job task; the
        task resolves to the stored person once the server id is known.
        """
        temp = TemporaryId.new()

        def apply(people: People | None) -> People:
            return add_person(people or {}, draft.to_person(temp.value, created_by=self.actor_id))

        async def persist() -> Person:
            person = await self.adapter.create_person(self.actor_id, draft)
            self._resolved[temp.value] = ConfirmedId(person.id)
            return person

        def reconcile(people: People | None, person: Person) -> People:
            if not people or temp.value not in people:
                raise ReconciliationMismatch(f"Temporary person {temp.value} is no longer cached")
            swapped = swap_identifier(people, temp, ConfirmedId(person.id))
            return replace_person(swapped, person)

        task = self.submit(
            Mutation(
                collection=PEOPLE,
                apply=apply,
                persist=persist,
                reconcile=reconcile,
                refetch=self.people_loader,
                label="create_person",
            )
        )
        return temp, task

    async def create_person(self, draft: PersonDraft) -> ConfirmedId:
        """Create a person and wait for the server id."""
        _, task = self.add_person(draft)
        person = await asyncio.shield(task)
        return ConfirmedId(person.id)

    async def update_person(self, person_id: str, changes: PersonChanges) -> Person:
        """Apply a profile edit optimistically and persist it."""
        update = changes.as_update()
        target = person_id

        def apply(people: People | None) -> People:
            nonlocal target
            target = self._resolve_id(person_id)
            current = (people or {}).get(target)
            if current is None or not update:
                return people or {}
            return replace_person(people, current.touch(updated_by=self.actor_id, **update))

        async def persist() -> Person:
            return await self.adapter.update_person(self.actor_id, target, changes)

        def reconcile(people: People | None, person: Person) -> People:
            if not people or person.id not in people:
                raise ReconciliationMismatch(f"Person {person.id} is not cached")
            return replace_person(people, person)

        return await self.run(
            Mutation(
                collection=PEOPLE,
                apply=apply,
                persist=persist,
                reconcile=reconcile,
                refetch=self.people_loader,
                label="update_person",
            )
        )
