"""Contract tests shared by the in-memory and SQLite stores."""
from __future__ import annotations

import pytest

from family_graph.errors import EdgeNotFoundError, PersonNotFoundError, RemoteAuthorizationError
from family_graph.models import PersonChanges, PersonDraft, RelationshipEdge, RelationshipType
from family_graph.persistence import InMemoryRemoteStore, SQLiteRemoteStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryRemoteStore()
    return SQLiteRemoteStore(tmp_path / "tree.db")


class TestPeople:
    """Person create/update."""

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, store):
        person = await store.create_person("acct-1", PersonDraft(name="Ruth", birth_date="1930-02-01"))

        people = await store.fetch_all_people()

        assert [p.id for p in people] == [person.id]
        assert people[0].name == "Ruth"
        assert people[0].birth_date == "1930-02-01"
        assert people[0].created_by == "acct-1"

    @pytest.mark.asyncio
    async def test_update_by_creator(self, store):
        person = await store.create_person("acct-1", PersonDraft(name="Ruth"))

        updated = await store.update_person("acct-1", person.id, PersonChanges(bio="Nurse", name="Ruth D."))

        assert updated.bio == "Nurse"
        assert updated.name == "Ruth D."
        assert updated.version == person.version + 1
        assert updated.updated_by == "acct-1"

    @pytest.mark.asyncio
    async def test_update_by_linked_account(self, store):
        person = await store.create_person("curator", PersonDraft(name="Ruth", linked_account_id="acct-ruth"))
        updated = await store.update_person("acct-ruth", person.id, PersonChanges(bio="Me"))
        assert updated.bio == "Me"

    @pytest.mark.asyncio
    async def test_update_by_stranger_rejected(self, store):
        person = await store.create_person("acct-1", PersonDraft(name="Ruth"))
        with pytest.raises(RemoteAuthorizationError):
            await store.update_person("acct-2", person.id, PersonChanges(bio="x"))

    @pytest.mark.asyncio
    async def test_update_missing_person(self, store):
        with pytest.raises(PersonNotFoundError):
            await store.update_person("acct-1", "ghost", PersonChanges(bio="x"))


class TestRelationships:
    """Edge create/delete."""

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, store):
        a = await store.create_person("acct-1", PersonDraft(name="A"))
        b = await store.create_person("acct-1", PersonDraft(name="B"))

        first = await store.create_relationship_edge("acct-1", RelationshipEdge.spouse(a.id, b.id))
        second = await store.create_relationship_edge("acct-1", RelationshipEdge.spouse(b.id, a.id))

        assert first == second
        assert len(await store.fetch_all_edges()) == 1

    @pytest.mark.asyncio
    async def test_child_tag_dedupes_with_parent(self, store):
        a = await store.create_person("acct-1", PersonDraft(name="A"))
        b = await store.create_person("acct-1", PersonDraft(name="B"))
        child = RelationshipEdge(relationship_type=RelationshipType.CHILD, person_one_id=a.id, person_two_id=b.id)

        first = await store.create_relationship_edge("acct-1", RelationshipEdge.parent(a.id, b.id))
        second = await store.create_relationship_edge("acct-1", child)

        assert first == second

    @pytest.mark.asyncio
    async def test_fetch_edges_round_trip(self, store):
        a = await store.create_person("acct-1", PersonDraft(name="A"))
        b = await store.create_person("acct-1", PersonDraft(name="B"))
        edge = RelationshipEdge.parent(a.id, b.id)

        edge_id = await store.create_relationship_edge("acct-1", edge)
        stored = await store.find_edge(edge)

        assert stored.edge_id == edge_id
        assert stored.edge == edge
        assert stored.created_by == "acct-1"

    @pytest.mark.asyncio
    async def test_delete_only_by_creator(self, store):
        a = await store.create_person("acct-1", PersonDraft(name="A"))
        b = await store.create_person("acct-1", PersonDraft(name="B"))
        edge_id = await store.create_relationship_edge("acct-1", RelationshipEdge.sibling(a.id, b.id))

        with pytest.raises(RemoteAuthorizationError):
            await store.delete_relationship_edge(edge_id, "acct-2")

        await store.delete_relationship_edge(edge_id, "acct-1")
        assert await store.fetch_all_edges() == []

    @pytest.mark.asyncio
    async def test_delete_missing_edge(self, store):
        with pytest.raises(EdgeNotFoundError):
            await store.delete_relationship_edge("nope", "acct-1")

    @pytest.mark.asyncio
    async def test_recreate_after_delete(self, store):
        a = await store.create_person("acct-1", PersonDraft(name="A"))
        b = await store.create_person("acct-1", PersonDraft(name="B"))
        edge = RelationshipEdge.spouse(a.id, b.id)

        old = await store.create_relationship_edge("acct-1", edge)
        await store.delete_relationship_edge(old, "acct-1")
        new = await store.create_relationship_edge("acct-1", edge)

        assert new != old


class TestBlocks:
    @pytest.mark.asyncio
    async def test_block_lifecycle(self, store):
        await store.create_block("acct-1", "acct-2")
        await store.create_block("acct-1", "acct-2")
        await store.create_block("acct-3", "acct-1")

        assert await store.fetch_blocked_account_ids("acct-1") == {"acct-2"}

        await store.delete_block("acct-1", "acct-2")
        assert await store.fetch_blocked_account_ids("acct-1") == set()


class TestSQLiteDurability:
    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "tree.db"
        first = SQLiteRemoteStore(path)
        a = await first.create_person("acct-1", PersonDraft(name="A"))
        b = await first.create_person("acct-1", PersonDraft(name="B"))
        await first.create_relationship_edge("acct-1", RelationshipEdge.parent(a.id, b.id))

        reopened = SQLiteRemoteStore(path)

        assert {p.name for p in await reopened.fetch_all_people()} == {"A", "B"}
        assert len(await reopened.fetch_all_edges()) == 1
