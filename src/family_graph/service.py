"""Session facade: one signed-in account working on its family tree.

``FamilyTreeSession`` wires a persistence adapter, the collection cache and
the optimistic coordinator together, and applies the account's block list
to everything it reads.
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

import structlog

from .cache import PEOPLE, CollectionCache, Mutation, OptimisticCoordinator
from .config import Settings, build_adapter
from .graph import (
    FamilyUnit,
    LineageEntry,
    count_ancestors,
    count_descendants,
    family_unit,
    filter_blocked_updates,
    find_by_account,
    get_siblings,
    hidden_person_ids,
    mark_blocked_placeholders,
    walk_ancestors,
    walk_descendants,
)
from .models import (
    Person,
    PersonChanges,
    PersonDraft,
    RelationshipEdge,
    RelationshipType,
    Update,
)
from .persistence.base import RemotePersistenceAdapter

logger = structlog.get_logger(__name__)


def relative_edge(anchor_id: str, relative_id: str, relationship_type: RelationshipType) -> RelationshipEdge:
    """Edge linking a newly added relative to the anchor person.

    ``parent`` means the relative is the anchor's parent, ``child`` that the
    relative is the anchor's child.
    """
    if relationship_type == RelationshipType.PARENT:
        return RelationshipEdge.parent(relative_id, anchor_id)
    if relationship_type == RelationshipType.CHILD:
        return RelationshipEdge.parent(anchor_id, relative_id)
    return RelationshipEdge(
        relationship_type=relationship_type, person_one_id=anchor_id, person_two_id=relative_id
    )


class FamilyTreeSession:
    """Family tree state for one authenticated account.

    Example:
        async with FamilyTreeSession(SQLiteRemoteStore("tree.db"), actor_id="acct-1") as session:
            await session.sync()
            me = await session.create_profile(PersonDraft(name="Ada"))
            mum = await session.add_relative(me.id, RelationshipType.PARENT, PersonDraft(name="Eve"))
            session.count_ancestors(me.id)
    """

    def __init__(
        self,
        adapter: RemotePersistenceAdapter,
        actor_id: str,
        *,
        cache: CollectionCache | None = None,
        refetch_after_graph_write: bool = False,
    ) -> None:
        self.adapter = adapter
        self.actor_id = actor_id
        self.cache = cache or CollectionCache()
        self.blocked_account_ids: frozenset[str] = frozenset()
        self.coordinator = OptimisticCoordinator(
            self.cache,
            adapter,
            actor_id,
            refetch_after_graph_write=refetch_after_graph_write,
            people_loader=self._load_people,
        )
        self._sync_task: asyncio.Task[Mapping[str, Person]] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> FamilyTreeSession:
        return cls(
            build_adapter(settings),
            settings.actor_id,
            refetch_after_graph_write=settings.refetch_after_graph_write,
        )

    async def __aenter__(self) -> FamilyTreeSession:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.coordinator.drain()
        await self.adapter.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def people(self) -> Mapping[str, Person]:
        return self.cache.get(PEOPLE) or {}

    @property
    def hidden_ids(self) -> frozenset[str]:
        return hidden_person_ids(self.people, self.blocked_account_ids)

    @property
    def ego(self) -> Person | None:
        """The profile linked to the signed-in account."""
        return find_by_account(self.people, self.actor_id)

    @property
    def is_stale(self) -> bool:
        return self.cache.is_stale(PEOPLE)

    async def _load_people(self) -> dict[str, Person]:
        registry = await self.coordinator.load_people()
        return dict(mark_blocked_placeholders(registry, self.blocked_account_ids))

    async def sync(self) -> Mapping[str, Person]:
        """Load blocks, people and edges; concurrent calls share one load."""
        if self._sync_task is not None and not self._sync_task.done():
            logger.debug("sync_already_running")
            return await asyncio.shield(self._sync_task)
        self._sync_task = asyncio.create_task(self._sync())
        return await asyncio.shield(self._sync_task)

    async def _sync(self) -> Mapping[str, Person]:
        async def load() -> dict[str, Person]:
            # blocks are read in queue order too, after any pending block job
            self.blocked_account_ids = frozenset(await self.adapter.fetch_blocked_account_ids(self.actor_id))
            return await self._load_people()

        people = await self.coordinator.refresh(PEOPLE, load)
        logger.info("sync_complete", people=len(people), blocked=len(self.blocked_account_ids))
        return people

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_profile(self, draft: PersonDraft) -> Person:
        """Create the signed-in account's own profile."""
        if draft.linked_account_id != self.actor_id:
            draft = draft.model_copy(update={"linked_account_id": self.actor_id})
        return await self._create(draft)

    async def add_person(self, draft: PersonDraft) -> Person:
        """Create an unlinked (ancestor) profile."""
        return await self._create(draft)

    async def _create(self, draft: PersonDraft) -> Person:
        _, created = self.coordinator.add_person(draft)
        person = await asyncio.shield(created)
        return self.people.get(person.id, person)

    async def add_relative(
        self,
        anchor_id: str,
        relationship_type: RelationshipType | str,
        draft: PersonDraft,
    ) -> Person:
        """Create a person and link them to ``anchor_id`` in one flow."""
        relationship_type = RelationshipType(relationship_type)
        if anchor_id not in self.people:
            logger.warning("add_relative_unknown_anchor", anchor_id=anchor_id)

        temp, created = self.coordinator.add_person(draft)
        person = await asyncio.shield(created)
        await self.coordinator.add_relationship(relative_edge(anchor_id, temp.value, relationship_type))
        return self.people.get(person.id, person)

    async def relate(
        self,
        person_one_id: str,
        person_two_id: str,
        relationship_type: RelationshipType | str,
    ) -> str:
        """Link two existing people; returns the stored edge id."""
        edge = RelationshipEdge(
            relationship_type=RelationshipType(relationship_type),
            person_one_id=person_one_id,
            person_two_id=person_two_id,
        )
        return await self.coordinator.add_relationship(edge)

    async def unrelate(
        self,
        person_one_id: str,
        person_two_id: str,
        relationship_type: RelationshipType | str,
    ) -> None:
        edge = RelationshipEdge(
            relationship_type=RelationshipType(relationship_type),
            person_one_id=person_one_id,
            person_two_id=person_two_id,
        )
        await self.coordinator.remove_relationship(edge)

    async def edit_profile(self, person_id: str, changes: PersonChanges | None = None, **fields: Any) -> Person:
        """Edit profile attributes (never adjacency)."""
        changes = changes or PersonChanges(**fields)
        return await self.coordinator.update_person(person_id, changes)

    async def block_account(self, account_id: str) -> None:
        """Block an account and turn its profile into a placeholder."""
        if account_id == self.actor_id:
            raise ValueError("Cannot block your own account")

        # the block set is read inside the job so overlapping calls build on each other
        def apply(people: Mapping[str, Person] | None) -> Mapping[str, Person]:
            return mark_blocked_placeholders(people or {}, self.blocked_account_ids | {account_id})

        async def persist() -> None:
            await self.adapter.create_block(self.actor_id, account_id)
            self.blocked_account_ids = self.blocked_account_ids | {account_id}

        await self.coordinator.run(
            Mutation(
                collection=PEOPLE,
                apply=apply,
                persist=persist,
                label="block_account",
            )
        )

    async def unblock_account(self, account_id: str) -> None:
        """Unblock an account; profiles are reloaded to restore their details."""

        async def persist() -> None:
            await self.adapter.delete_block(self.actor_id, account_id)
            self.blocked_account_ids = self.blocked_account_ids - {account_id}

        await self.coordinator.run(
            Mutation(
                collection=PEOPLE,
                apply=lambda people: people or {},
                persist=persist,
                refetch=self._load_people,
                refetch_after=True,
                label="unblock_account",
            )
        )

    # ------------------------------------------------------------------
    # Queries (blocked profiles excluded unless asked otherwise)
    # ------------------------------------------------------------------

    def _exclude(self, include_hidden: bool) -> frozenset[str]:
        return frozenset() if include_hidden else self.hidden_ids

    def count_ancestors(self, person_id: str, *, include_hidden: bool = False) -> int:
        return count_ancestors(self.people, person_id, exclude=self._exclude(include_hidden))

    def count_descendants(self, person_id: str, *, include_hidden: bool = False) -> int:
        return count_descendants(self.people, person_id, exclude=self._exclude(include_hidden))

    def get_siblings(self, person_id: str, *, include_hidden: bool = False) -> list[Person]:
        return get_siblings(self.people, person_id, exclude=self._exclude(include_hidden))

    def ancestors(self, person_id: str, max_generations: int | None = None) -> Iterator[LineageEntry]:
        return walk_ancestors(self.people, person_id, max_generations=max_generations, exclude=self.hidden_ids)

    def descendants(self, person_id: str, max_generations: int | None = None) -> Iterator[LineageEntry]:
        return walk_descendants(self.people, person_id, max_generations=max_generations, exclude=self.hidden_ids)

    def family_unit(self, person_id: str) -> FamilyUnit | None:
        return family_unit(self.people, person_id, exclude=self.hidden_ids)

    def visible_updates(self, updates: Iterable[Update]) -> list[Update]:
        return filter_blocked_updates(updates, self.blocked_account_ids, self.people)
