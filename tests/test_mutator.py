"""Tests for the relationship mutator."""
from __future__ import annotations

from datetime import UTC, datetime
from itertools import combinations

import pytest

from family_graph.errors import InvalidEdgeError, MissingEndpointWarning
from family_graph.graph import apply_edge, get_siblings, remove_edge, require_endpoints
from family_graph.models import Person, RelationshipEdge, RelationshipType

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def _people(*ids: str) -> dict[str, Person]:
    return {pid: Person(id=pid, name=pid.upper()) for pid in ids}


def _adjacency(people) -> dict[str, tuple]:
    return {
        pid: (p.parent_ids, p.child_ids, p.spouse_ids, p.sibling_ids)
        for pid, p in people.items()
    }


def _assert_symmetric(people) -> None:
    for a, b in combinations(people, 2):
        pa, pb = people[a], people[b]
        assert (b in pa.child_ids) == (a in pb.parent_ids)
        assert (a in pb.child_ids) == (b in pa.parent_ids)
        assert (b in pa.spouse_ids) == (a in pb.spouse_ids)
        assert (b in pa.sibling_ids) == (a in pb.sibling_ids)


def _assert_sibling_closure(people) -> None:
    for pid, person in people.items():
        group = set(person.sibling_ids) | {pid}
        for sibling_id in person.sibling_ids:
            assert set(people[sibling_id].sibling_ids) | {sibling_id} == group


class TestParentEdges:
    """Parent/child edges."""

    def test_parent_edge_links_both_sides(self):
        people = _people("a", "b")

        result = apply_edge(people, RelationshipEdge.parent("a", "b"), now=NOW)

        assert result["a"].child_ids == ("b",)
        assert result["b"].parent_ids == ("a",)
        assert people["a"].child_ids == ()

    def test_child_tag_uses_same_direction(self):
        people = _people("a", "b")
        edge = RelationshipEdge(relationship_type=RelationshipType.CHILD, person_one_id="a", person_two_id="b")

        result = apply_edge(people, edge)

        assert result["a"].child_ids == ("b",)
        assert result["b"].parent_ids == ("a",)

    def test_touched_people_stamped_once(self):
        people = _people("a", "b", "c")

        result = apply_edge(people, RelationshipEdge.parent("a", "b"), now=NOW)

        assert result["a"].version == 2
        assert result["b"].version == 2
        assert result["a"].updated_at == NOW
        assert result["c"] is people["c"]

    def test_stamp_false_keeps_versions(self):
        people = _people("a", "b")
        result = apply_edge(people, RelationshipEdge.parent("a", "b"), stamp=False)
        assert result["a"].version == 1


class TestSpouseEdges:
    def test_spouse_edge_is_mutual(self):
        result = apply_edge(_people("a", "b"), RelationshipEdge.spouse("a", "b"))
        assert result["a"].spouse_ids == ("b",)
        assert result["b"].spouse_ids == ("a",)


class TestSiblingEdges:
    """Sibling edges and group closure."""

    def test_direct_sibling(self):
        result = apply_edge(_people("a", "b"), RelationshipEdge.sibling("a", "b"))
        assert result["a"].sibling_ids == ("b",)
        assert result["b"].sibling_ids == ("a",)

    def test_transitive_closure(self):
        people = _people("a", "b", "c")
        people = apply_edge(people, RelationshipEdge.sibling("a", "b"))
        people = apply_edge(people, RelationshipEdge.sibling("b", "c"))

        assert "c" in [p.id for p in get_siblings(people, "a")]
        assert "a" in [p.id for p in get_siblings(people, "c")]
        assert set(people["a"].sibling_ids) == {"b", "c"}
        assert set(people["c"].sibling_ids) == {"a", "b"}
        _assert_symmetric(people)

    def test_parents_propagate_between_siblings(self):
        people = _people("mum", "a", "b")
        people = apply_edge(people, RelationshipEdge.parent("mum", "a"))

        result = apply_edge(people, RelationshipEdge.sibling("a", "b"))

        assert result["b"].parent_ids == ("mum",)
        assert set(result["mum"].child_ids) == {"a", "b"}
        _assert_symmetric(result)

    def test_shared_parent_children_join_group(self):
        people = _people("dad", "a", "b", "c")
        people = apply_edge(people, RelationshipEdge.parent("dad", "a"))
        people = apply_edge(people, RelationshipEdge.parent("dad", "b"))

        result = apply_edge(people, RelationshipEdge.sibling("b", "c"))

        assert set(result["a"].sibling_ids) == {"b", "c"}
        assert set(result["c"].sibling_ids) == {"a", "b"}
        assert "c" in result["dad"].child_ids
        _assert_symmetric(result)

    def test_existing_order_preserved(self):
        people = _people("a", "b", "c")
        people = apply_edge(people, RelationshipEdge.sibling("a", "b"))
        result = apply_edge(people, RelationshipEdge.sibling("a", "c"))
        assert result["a"].sibling_ids == ("b", "c")

    def test_spouse_is_not_a_sibling_link(self):
        """spouse(A,B), sibling(B,C), sibling(A,C)."""
        people = _people("a", "b", "c")

        people = apply_edge(people, RelationshipEdge.spouse("a", "b"))
        assert people["a"].spouse_ids == ("b",)
        assert people["b"].spouse_ids == ("a",)

        people = apply_edge(people, RelationshipEdge.sibling("b", "c"))
        assert people["b"].sibling_ids == ("c",)
        assert people["c"].sibling_ids == ("b",)
        assert people["a"].sibling_ids == ()

        people = apply_edge(people, RelationshipEdge.sibling("a", "c"))
        for pid in ("a", "b", "c"):
            others = {"a", "b", "c"} - {pid}
            assert set(people[pid].sibling_ids) == others
        assert people["a"].spouse_ids == ("b",)
        assert people["b"].spouse_ids == ("a",)
        assert people["c"].spouse_ids == ()
        _assert_symmetric(people)


class TestInvariants:
    """Invariants that hold for every edge kind."""

    @pytest.mark.parametrize(
        "edge",
        [
            RelationshipEdge.parent("a", "b"),
            RelationshipEdge.spouse("a", "b"),
            RelationshipEdge.sibling("a", "b"),
        ],
    )
    def test_idempotent(self, edge):
        once = apply_edge(_people("a", "b"), edge)
        twice = apply_edge(once, edge)

        assert twice is once
        assert _adjacency(twice) == _adjacency(once)

    @pytest.mark.parametrize("kind", list(RelationshipType))
    def test_self_edge_rejected(self, kind):
        people = _people("a")
        before = _adjacency(people)
        edge = RelationshipEdge(relationship_type=kind, person_one_id="a", person_two_id="a")

        with pytest.raises(InvalidEdgeError):
            apply_edge(people, edge)
        assert _adjacency(people) == before

    @pytest.mark.parametrize("kind", list(RelationshipType))
    def test_missing_endpoint_is_noop(self, kind):
        people = _people("a")
        edge = RelationshipEdge(relationship_type=kind, person_one_id="a", person_two_id="ghost")

        assert apply_edge(people, edge) is people

    def test_symmetry_across_mixed_sequence(self):
        people = _people("g", "p", "q", "x", "y", "z")
        for edge in [
            RelationshipEdge.parent("g", "p"),
            RelationshipEdge.parent("g", "q"),
            RelationshipEdge.spouse("p", "x"),
            RelationshipEdge.parent("p", "y"),
            RelationshipEdge.sibling("y", "z"),
            RelationshipEdge.sibling("q", "x"),
        ]:
            people = apply_edge(people, edge)
            _assert_symmetric(people)

    def test_require_endpoints(self):
        people = _people("a")
        require_endpoints(people, RelationshipEdge.parent("a", "a"))
        with pytest.raises(MissingEndpointWarning) as exc:
            require_endpoints(people, RelationshipEdge.parent("a", "ghost"))
        assert exc.value.missing_ids == ["ghost"]


class TestRemoveEdge:
    """Edge removal."""

    def test_remove_parent(self):
        people = apply_edge(_people("a", "b"), RelationshipEdge.parent("a", "b"))

        result = remove_edge(people, RelationshipEdge.parent("a", "b"), now=NOW)

        assert result["a"].child_ids == ()
        assert result["b"].parent_ids == ()
        assert result["a"].version == 3

    def test_remove_spouse(self):
        people = apply_edge(_people("a", "b"), RelationshipEdge.spouse("a", "b"))
        result = remove_edge(people, RelationshipEdge.spouse("b", "a"))
        assert result["a"].spouse_ids == ()
        assert result["b"].spouse_ids == ()

    def test_remove_sibling_detaches_person_from_group(self):
        people = _people("a", "b", "c")
        people = apply_edge(people, RelationshipEdge.sibling("a", "b"))
        people = apply_edge(people, RelationshipEdge.sibling("b", "c"))

        result = remove_edge(people, RelationshipEdge.sibling("a", "c"))

        assert result["c"].sibling_ids == ()
        assert result["a"].sibling_ids == ("b",)
        assert result["b"].sibling_ids == ("a",)
        _assert_symmetric(result)
        _assert_sibling_closure(result)

    def test_remove_sibling_pair(self):
        people = apply_edge(_people("a", "b"), RelationshipEdge.sibling("a", "b"))

        result = remove_edge(people, RelationshipEdge.sibling("b", "a"))

        assert result["a"].sibling_ids == ()
        assert result["b"].sibling_ids == ()

    def test_remove_sibling_between_groups_is_noop(self):
        people = _people("a", "b", "c", "d")
        people = apply_edge(people, RelationshipEdge.sibling("a", "b"))
        people = apply_edge(people, RelationshipEdge.sibling("c", "d"))

        assert remove_edge(people, RelationshipEdge.sibling("a", "c")) is people

    def test_remove_absent_edge_is_noop(self):
        people = _people("a", "b")
        assert remove_edge(people, RelationshipEdge.spouse("a", "b")) is people

    def test_remove_self_edge_rejected(self):
        with pytest.raises(InvalidEdgeError):
            remove_edge(_people("a"), RelationshipEdge.spouse("a", "a"))
