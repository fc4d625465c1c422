"""Tests for graph traversal queries."""
from __future__ import annotations

from functools import reduce

from family_graph.graph import (
    TraversalDirection,
    apply_edge,
    count_ancestors,
    count_descendants,
    family_unit,
    get_siblings,
    sibling_group,
    walk_ancestors,
    walk_descendants,
)
from family_graph.graph.queries import LineageEntry
from family_graph.models import Person, RelationshipEdge


def _tree(ids, edges) -> dict[str, Person]:
    people = {pid: Person(id=pid, name=pid.title()) for pid in ids}
    return reduce(apply_edge, edges, people)


class TestCounts:
    """Ancestor and descendant counting."""

    def test_chain(self):
        """parent(A,B), parent(B,C)."""
        people = _tree("abc", [RelationshipEdge.parent("a", "b"), RelationshipEdge.parent("b", "c")])

        assert count_ancestors(people, "c") == 2
        assert count_descendants(people, "a") == 2
        assert count_ancestors(people, "a") == 0
        assert count_descendants(people, "c") == 0

    def test_unknown_person_counts_zero(self):
        assert count_ancestors({}, "ghost") == 0
        assert count_descendants({}, "ghost") == 0

    def test_shared_ancestor_counted_once(self):
        # pedigree collapse: both parents descend from g
        people = _tree(
            ["g", "m", "f", "c"],
            [
                RelationshipEdge.parent("g", "m"),
                RelationshipEdge.parent("g", "f"),
                RelationshipEdge.parent("m", "c"),
                RelationshipEdge.parent("f", "c"),
            ],
        )
        assert count_ancestors(people, "c") == 3

    def test_cycle_terminates(self):
        people = _tree("ab", [RelationshipEdge.parent("a", "b"), RelationshipEdge.parent("b", "a")])
        assert count_ancestors(people, "a") == 1
        assert count_descendants(people, "a") == 1

    def test_excluded_people_are_not_walked_through(self):
        people = _tree("abc", [RelationshipEdge.parent("a", "b"), RelationshipEdge.parent("b", "c")])
        assert count_ancestors(people, "c", exclude={"b"}) == 0
        assert count_descendants(people, "a", exclude={"c"}) == 1

    def test_dangling_ids_ignored(self):
        people = {"c": Person(id="c", name="C", parent_ids=("gone",))}
        assert count_ancestors(people, "c") == 0


class TestLineage:
    """Generation-tagged walks."""

    def test_generations_and_labels(self):
        people = _tree(
            "abcd",
            [
                RelationshipEdge.parent("a", "b"),
                RelationshipEdge.parent("b", "c"),
                RelationshipEdge.parent("c", "d"),
            ],
        )

        entries = list(walk_ancestors(people, "d"))

        assert [(e.person.id, e.generation) for e in entries] == [("c", 1), ("b", 2), ("a", 3)]
        assert [e.relationship_label for e in entries] == ["parent", "grandparent", "great-grandparent"]

    def test_max_generations(self):
        people = _tree("abc", [RelationshipEdge.parent("a", "b"), RelationshipEdge.parent("b", "c")])
        entries = list(walk_descendants(people, "a", max_generations=1))
        assert [e.person.id for e in entries] == ["b"]
        assert entries[0].direction == TraversalDirection.DESCENDANTS

    def test_descendant_labels(self):
        person = Person(id="x", name="X")
        assert LineageEntry(person, 2, TraversalDirection.DESCENDANTS).relationship_label == "grandchild"
        assert LineageEntry(person, 4, TraversalDirection.DESCENDANTS).relationship_label == "great-great-grandchild"


class TestSiblings:
    """Transitive sibling resolution."""

    def test_shared_parent_siblings_without_sibling_edges(self):
        people = _tree(
            ["p", "a", "b"],
            [RelationshipEdge.parent("p", "a"), RelationshipEdge.parent("p", "b")],
        )
        assert [s.id for s in get_siblings(people, "a")] == ["b"]

    def test_mixes_direct_and_parent_links(self):
        people = _tree(
            ["p", "a", "b", "c"],
            [RelationshipEdge.parent("p", "a"), RelationshipEdge.parent("p", "b")],
        )
        # c is only a direct sibling of b, added without the mutator
        people["b"] = people["b"].model_copy(update={"sibling_ids": ("c",)})
        people["c"] = people["c"].model_copy(update={"sibling_ids": ("b",)})

        assert {s.id for s in get_siblings(people, "a")} == {"b", "c"}

    def test_spouse_not_followed(self):
        people = _tree("abc", [RelationshipEdge.spouse("a", "b"), RelationshipEdge.sibling("b", "c")])
        assert get_siblings(people, "a") == []
        assert [s.id for s in get_siblings(people, "c")] == ["b"]

    def test_unknown_person(self):
        assert get_siblings({}, "ghost") == []

    def test_excluded_siblings_hidden(self):
        people = _tree("abc", [RelationshipEdge.sibling("a", "b"), RelationshipEdge.sibling("b", "c")])
        assert {s.id for s in get_siblings(people, "a", exclude={"b"})} == {"c"}

    def test_sibling_group_includes_seeds(self):
        people = _tree("abc", [RelationshipEdge.sibling("a", "b")])
        assert set(sibling_group(people, ["a", "c"])) == {"a", "b", "c"}


class TestFamilyUnit:
    def test_family_unit(self):
        people = _tree(
            ["mum", "dad", "me", "sis", "wife", "kid"],
            [
                RelationshipEdge.parent("mum", "me"),
                RelationshipEdge.parent("dad", "me"),
                RelationshipEdge.sibling("me", "sis"),
                RelationshipEdge.spouse("me", "wife"),
                RelationshipEdge.parent("me", "kid"),
            ],
        )

        unit = family_unit(people, "me")

        assert {p.id for p in unit.parents} == {"mum", "dad"}
        assert [p.id for p in unit.siblings] == ["sis"]
        assert [p.id for p in unit.spouses] == ["wife"]
        assert [p.id for p in unit.children] == ["kid"]
        assert unit.is_complete
        assert unit.family_size == 6

    def test_unknown_person(self):
        assert family_unit({}, "ghost") is None
