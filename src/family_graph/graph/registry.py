"""Person registry helpers.

A registry is a plain ``dict[str, Person]`` treated as an immutable value:
every helper here returns a new dict and leaves its input alone.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from ..errors import InvalidEdgeError
from ..models.edge import StoredEdge
from ..models.identifiers import ConfirmedId, TemporaryId
from ..models.person import ADJACENCY_FIELDS, Person
from .mutator import apply_edge

logger = structlog.get_logger(__name__)

People = Mapping[str, Person]


def build_registry(people: Iterable[Person]) -> dict[str, Person]:
    """Index people by id (later duplicates win)."""
    return {person.id: person for person in people}


def project_registry(people: Iterable[Person], edges: Iterable[StoredEdge]) -> dict[str, Person]:
    """Build adjacency from persisted edge rows.

    Rows are folded through ``apply_edge`` without stamping, so the result
    honours the same symmetry and sibling-closure rules as live edits.
    Bad rows (self edges) are skipped and logged.
    """
    registry: People = build_registry(people)
    skipped = 0
    for stored in edges:
        try:
            registry = apply_edge(registry, stored.edge, stamp=False)
        except InvalidEdgeError:
            skipped += 1
            logger.warning("invalid_stored_edge", edge_id=stored.edge_id)
    if skipped:
        logger.info("projection_skipped_edges", skipped=skipped)
    return dict(registry)


def add_person(people: People, person: Person) -> dict[str, Person]:
    result = dict(people)
    result[person.id] = person
    return result


def replace_person(people: People, person: Person) -> dict[str, Person]:
    """Replace a person's profile data, keeping the cached adjacency."""
    current = people.get(person.id)
    if current is None:
        return add_person(people, person)
    adjacency = {name: getattr(current, name) for name in ADJACENCY_FIELDS}
    return add_person(people, person.model_copy(update=adjacency))


def swap_identifier(people: People, temporary: TemporaryId, confirmed: ConfirmedId) -> dict[str, Person]:
    """Re-key a person from its temporary id to its server id.

    Every adjacency tuple referencing the temporary id is rewritten too.
    """
    old, new = temporary.value, confirmed.value
    result: dict[str, Person] = {}
    for person_id, person in people.items():
        updates: dict[str, object] = {}
        for name in ADJACENCY_FIELDS:
            ids = getattr(person, name)
            if old in ids:
                updates[name] = tuple(new if i == old else i for i in ids)
        if person_id == old:
            updates["id"] = new
            person_id = new
        result[person_id] = person.model_copy(update=updates) if updates else person
    return result


def find_by_account(people: People, account_id: str) -> Person | None:
    """The profile linked to an authenticated account (the ego for that account)."""
    for person in people.values():
        if person.linked_account_id == account_id:
            return person
    return None
