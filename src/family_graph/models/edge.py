"""Relationship edges between two people.

Direction rules:
- ``parent`` and ``child`` both mean "person one is the parent of person two".
- ``spouse`` and ``sibling`` are symmetric; the pair order carries no meaning.

Fingerprints are SHA-256 of the canonical tuple joined with "\\n", so the
same relationship always maps to the same idempotency key regardless of
which tag or pair order the caller used.
"""
from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field


class RelationshipType(str, Enum):
    """The four kinds of family edges."""
    PARENT = "parent"  # person one is the parent
    CHILD = "child"  # person one is the parent (legacy tag)
    SPOUSE = "spouse"
    SIBLING = "sibling"

    @property
    def is_symmetric(self) -> bool:
        return self in (RelationshipType.SPOUSE, RelationshipType.SIBLING)


def _sha256(parts: Iterable[str]) -> str:
    canonical = "\n".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class RelationshipEdge(BaseModel):
    """A proposed or stored relationship (type, person one, person two)."""

    model_config = ConfigDict(frozen=True)

    relationship_type: RelationshipType
    person_one_id: str = Field(min_length=1)
    person_two_id: str = Field(min_length=1)

    @classmethod
    def parent(cls, parent_id: str, child_id: str) -> RelationshipEdge:
        return cls(relationship_type=RelationshipType.PARENT, person_one_id=parent_id, person_two_id=child_id)

    @classmethod
    def spouse(cls, a_id: str, b_id: str) -> RelationshipEdge:
        return cls(relationship_type=RelationshipType.SPOUSE, person_one_id=a_id, person_two_id=b_id)

    @classmethod
    def sibling(cls, a_id: str, b_id: str) -> RelationshipEdge:
        return cls(relationship_type=RelationshipType.SIBLING, person_one_id=a_id, person_two_id=b_id)

    @property
    def is_self_edge(self) -> bool:
        return self.person_one_id == self.person_two_id

    @property
    def endpoints(self) -> tuple[str, str]:
        return self.person_one_id, self.person_two_id

    def canonical(self) -> RelationshipEdge:
        """Normalize the tag (child -> parent) and order symmetric pairs."""
        kind = self.relationship_type
        if kind == RelationshipType.CHILD:
            kind = RelationshipType.PARENT
        a, b = self.person_one_id, self.person_two_id
        if kind.is_symmetric:
            a, b = sorted([a, b])
        return RelationshipEdge(relationship_type=kind, person_one_id=a, person_two_id=b)

    def fingerprint(self) -> str:
        c = self.canonical()
        return _sha256(["relationship", c.relationship_type.value, c.person_one_id, c.person_two_id])

    def with_ids(self, person_one_id: str, person_two_id: str) -> RelationshipEdge:
        return self.model_copy(update={"person_one_id": person_one_id, "person_two_id": person_two_id})


class StoredEdge(BaseModel):
    """A relationship row as persisted by the remote store."""

    model_config = ConfigDict(frozen=True)

    edge_id: str
    edge: RelationshipEdge
    created_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
