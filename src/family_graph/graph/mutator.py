"""Relationship mutator - the only writer of adjacency tuples.

``apply_edge`` and ``remove_edge`` are pure: they never modify the mapping
they are given. They return a new dict in which every person whose
adjacency changed is a new ``Person`` object (version bumped, updated_at
refreshed once per call); untouched people are shared with the input.
When nothing changes the input mapping itself is returned, so callers can
detect a no-op with ``result is people``.
"""
from __future__ import annotations

from collections import ChainMap
from collections.abc import Mapping
from datetime import UTC, datetime

import structlog

from ..errors import InvalidEdgeError, MissingEndpointWarning
from ..models.edge import RelationshipEdge, RelationshipType
from ..models.person import Person
from .queries import sibling_group

logger = structlog.get_logger(__name__)

People = Mapping[str, Person]


class _Changeset:
    """Copy-on-write view over a people mapping."""

    def __init__(self, people: People) -> None:
        self.base = people
        self.working: dict[str, Person] = {}
        self.view: ChainMap[str, Person] = ChainMap(self.working, dict(people))

    def _set(self, person_id: str, field_name: str, value: tuple[str, ...]) -> None:
        current = self.view[person_id]
        if getattr(current, field_name) == value:
            return
        self.working[person_id] = current.model_copy(update={field_name: value})

    def link(self, person_id: str, field_name: str, other_id: str) -> None:
        if person_id == other_id or person_id not in self.view:
            return
        ids = getattr(self.view[person_id], field_name)
        if other_id not in ids:
            self._set(person_id, field_name, ids + (other_id,))

    def unlink(self, person_id: str, field_name: str, other_id: str) -> None:
        if person_id not in self.view:
            return
        ids = getattr(self.view[person_id], field_name)
        if other_id in ids:
            self._set(person_id, field_name, tuple(i for i in ids if i != other_id))

    def merge_siblings(self, person_id: str, group: list[str]) -> None:
        existing = self.view[person_id].sibling_ids
        additions = tuple(i for i in group if i != person_id and i not in existing)
        if additions:
            self._set(person_id, "sibling_ids", existing + additions)

    def commit(self, now: datetime | None, stamp: bool) -> People:
        if not self.working:
            return self.base
        stamp_time = now or datetime.now(UTC)
        result = dict(self.base)
        for person_id, person in self.working.items():
            original = self.base[person_id]
            if stamp:
                result[person_id] = original.touch(
                    stamp_time,
                    parent_ids=person.parent_ids,
                    spouse_ids=person.spouse_ids,
                    child_ids=person.child_ids,
                    sibling_ids=person.sibling_ids,
                )
            else:
                result[person_id] = person
        return result


def require_endpoints(people: People, edge: RelationshipEdge) -> None:
    """Raise ``MissingEndpointWarning`` unless both endpoints exist."""
    missing = [pid for pid in edge.endpoints if pid not in people]
    if missing:
        raise MissingEndpointWarning(missing)


def _validate(people: People, edge: RelationshipEdge, operation: str) -> bool:
    """Reject self edges; report whether both endpoints are present."""
    if edge.is_self_edge:
        raise InvalidEdgeError(edge.person_one_id, edge.relationship_type.value)
    missing = [pid for pid in edge.endpoints if pid not in people]
    if missing:
        logger.warning(
            "missing_endpoint",
            operation=operation,
            relationship_type=edge.relationship_type.value,
            missing_ids=missing,
        )
        return False
    return True


def _apply_sibling(changes: _Changeset, a_id: str, b_id: str) -> None:
    a = changes.view[a_id]
    b = changes.view[b_id]

    # Siblings share parents once linked
    for source, target_id in ((a, b_id), (b, a_id)):
        for parent_id in source.parent_ids:
            if parent_id not in changes.view or parent_id == target_id:
                continue
            changes.link(target_id, "parent_ids", parent_id)
            changes.link(parent_id, "child_ids", target_id)

    group = sibling_group(changes.view, [a_id, b_id])
    for member_id in group:
        changes.merge_siblings(member_id, group)


def _remove_sibling(changes: _Changeset, a_id: str, b_id: str) -> None:
    # b leaves the whole group so the remaining members stay closed
    if b_id not in changes.view[a_id].sibling_ids and a_id not in changes.view[b_id].sibling_ids:
        return
    members = set(changes.view[b_id].sibling_ids) | {a_id}
    for member_id in sorted(members):
        changes.unlink(member_id, "sibling_ids", b_id)
        changes.unlink(b_id, "sibling_ids", member_id)


def apply_edge(
    people: People,
    edge: RelationshipEdge,
    *,
    now: datetime | None = None,
    stamp: bool = True,
) -> People:
    """Return a new collection with ``edge`` added on both endpoints.

    Args:
        people: Current collection (not modified)
        edge: Relationship to add; parent and child tags both mean
            person one is the parent
        now: Timestamp for updated_at (defaults to the current time)
        stamp: Bump version/updated_at on touched people; False is used
            when projecting already-persisted edges

    Returns:
        The new collection, or ``people`` itself when nothing changed

    Raises:
        InvalidEdgeError: If both endpoints are the same person
    """
    if not _validate(people, edge, "apply"):
        return people

    changes = _Changeset(people)
    a_id, b_id = edge.endpoints
    kind = edge.relationship_type

    if kind in (RelationshipType.PARENT, RelationshipType.CHILD):
        changes.link(a_id, "child_ids", b_id)
        changes.link(b_id, "parent_ids", a_id)
    elif kind == RelationshipType.SPOUSE:
        changes.link(a_id, "spouse_ids", b_id)
        changes.link(b_id, "spouse_ids", a_id)
    else:
        _apply_sibling(changes, a_id, b_id)

    result = changes.commit(now, stamp)
    if result is not people:
        logger.debug(
            "edge_applied",
            relationship_type=kind.value,
            person_one_id=a_id,
            person_two_id=b_id,
            touched=len(changes.working),
        )
    return result


def remove_edge(people: People, edge: RelationshipEdge, *, now: datetime | None = None) -> People:
    """Return a new collection with ``edge`` removed from both endpoints.

    For siblings person two is detached from the whole sibling group, so
    the members left behind are still all linked to each other. Siblings
    that share a parent stay reachable through that parent in queries.
    """
    if not _validate(people, edge, "remove"):
        return people

    changes = _Changeset(people)
    a_id, b_id = edge.endpoints
    kind = edge.relationship_type

    if kind in (RelationshipType.PARENT, RelationshipType.CHILD):
        changes.unlink(a_id, "child_ids", b_id)
        changes.unlink(b_id, "parent_ids", a_id)
    elif kind == RelationshipType.SPOUSE:
        changes.unlink(a_id, "spouse_ids", b_id)
        changes.unlink(b_id, "spouse_ids", a_id)
    else:
        _remove_sibling(changes, a_id, b_id)

    result = changes.commit(now, True)
    if result is not people:
        logger.debug("edge_removed", relationship_type=kind.value, person_one_id=a_id, person_two_id=b_id)
    return result
