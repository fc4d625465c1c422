"""Read-only traversal queries over a people collection.

Provides:
- Ancestor / descendant counting and generation-tagged walks
- Transitive sibling resolution (direct sibling edges + shared parents)
- Family unit reconstruction

Every traversal is breadth-first with a visited set, so a data bug that
introduces a cycle cannot make it loop. Ids listed in ``exclude`` (hidden
or blocked people) are neither returned nor walked through.
"""
from __future__ import annotations

from collections import deque
from collections.abc import Callable, Collection, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

from ..models.person import Person

People = Mapping[str, Person]
Expander = Callable[[Person, People], Iterable[str]]


class TraversalDirection(str, Enum):
    """Direction for lineage traversal."""
    ANCESTORS = "ancestors"  # Go up the tree (parents, grandparents)
    DESCENDANTS = "descendants"  # Go down the tree (children, grandchildren)


@dataclass(frozen=True)
class LineageEntry:
    """A person reached by a lineage walk, with generation distance."""
    person: Person
    generation: int  # 1=parent/child, 2=grandparent/grandchild, etc.
    direction: TraversalDirection

    @property
    def relationship_label(self) -> str:
        """Human-readable relationship label."""
        base = "parent" if self.direction == TraversalDirection.ANCESTORS else "child"
        if self.generation == 1:
            return base
        if self.generation == 2:
            return f"grand{base}"
        greats = self.generation - 2
        return f"{'great-' * greats}grand{base}"


@dataclass
class FamilyUnit:
    """Immediate family centered on one person."""
    focal_person: Person
    parents: list[Person] = field(default_factory=list)
    spouses: list[Person] = field(default_factory=list)
    children: list[Person] = field(default_factory=list)
    siblings: list[Person] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """Check if both parents are known."""
        return len(self.parents) >= 2

    @property
    def family_size(self) -> int:
        """Total number of people in this family unit."""
        return 1 + len(self.parents) + len(self.spouses) + len(self.children) + len(self.siblings)


def _traverse(
    people: People,
    seeds: Iterable[str],
    expand: Expander,
    exclude: Collection[str] = (),
    max_depth: int | None = None,
) -> Iterator[tuple[Person, int]]:
    """BFS from ``seeds`` yielding (person, depth) for each reachable person.

    Seeds are yielded at depth 0. Ids missing from ``people`` are skipped.
    """
    visited: set[str] = set()
    queue: deque[tuple[str, int]] = deque((seed, 0) for seed in seeds)

    while queue:
        current_id, depth = queue.popleft()
        if current_id in visited:
            continue
        visited.add(current_id)

        person = people.get(current_id)
        if person is None:
            continue
        yield person, depth

        if max_depth is not None and depth >= max_depth:
            continue
        for next_id in expand(person, people):
            if next_id not in visited and next_id not in exclude:
                queue.append((next_id, depth + 1))


def _parents(person: Person, people: People) -> Iterable[str]:
    return person.parent_ids


def _children(person: Person, people: People) -> Iterable[str]:
    return person.child_ids


def _sibling_links(person: Person, people: People) -> Iterator[str]:
    """Direct siblings plus every child of each of the person's parents."""
    yield from person.sibling_ids
    for parent_id in person.parent_ids:
        parent = people.get(parent_id)
        if parent is not None:
            yield from parent.child_ids


def walk_ancestors(
    people: People,
    person_id: str,
    *,
    max_generations: int | None = None,
    exclude: Collection[str] = (),
) -> Iterator[LineageEntry]:
    """Yield ancestors nearest-first (parents, then grandparents, ...)."""
    if person_id not in people:
        return
    for person, depth in _traverse(people, [person_id], _parents, exclude, max_generations):
        if depth > 0:
            yield LineageEntry(person, depth, TraversalDirection.ANCESTORS)


def walk_descendants(
    people: People,
    person_id: str,
    *,
    max_generations: int | None = None,
    exclude: Collection[str] = (),
) -> Iterator[LineageEntry]:
    """Yield descendants nearest-first (children, then grandchildren, ...)."""
    if person_id not in people:
        return
    for person, depth in _traverse(people, [person_id], _children, exclude, max_generations):
        if depth > 0:
            yield LineageEntry(person, depth, TraversalDirection.DESCENDANTS)


def count_ancestors(people: People, person_id: str, *, exclude: Collection[str] = ()) -> int:
    """Number of distinct ancestors; 0 when the person is unknown."""
    return sum(1 for _ in walk_ancestors(people, person_id, exclude=exclude))


def count_descendants(people: People, person_id: str, *, exclude: Collection[str] = ()) -> int:
    """Number of distinct descendants; 0 when the person is unknown."""
    return sum(1 for _ in walk_descendants(people, person_id, exclude=exclude))


def sibling_group(people: People, seed_ids: Iterable[str], *, exclude: Collection[str] = ()) -> list[str]:
    """Ids of everyone reachable from the seeds through sibling links.

    Includes the seeds themselves (when present) and is returned in
    visitation order. Spouse edges are never followed.
    """
    return [person.id for person, _ in _traverse(people, seed_ids, _sibling_links, exclude)]


def get_siblings(people: People, person_id: str, *, exclude: Collection[str] = ()) -> list[Person]:
    """Transitive siblings of a person, excluding the person."""
    if person_id not in people:
        return []
    return [
        person
        for person, _ in _traverse(people, [person_id], _sibling_links, exclude)
        if person.id != person_id
    ]


def family_unit(people: People, person_id: str, *, exclude: Collection[str] = ()) -> FamilyUnit | None:
    """Reconstruct the immediate family of a person."""
    focal = people.get(person_id)
    if focal is None:
        return None

    def resolve(ids: Iterable[str]) -> list[Person]:
        return [people[i] for i in ids if i in people and i not in exclude]

    return FamilyUnit(
        focal_person=focal,
        parents=resolve(focal.parent_ids),
        spouses=resolve(focal.spouse_ids),
        children=resolve(focal.child_ids),
        siblings=get_siblings(people, person_id, exclude=exclude),
    )
