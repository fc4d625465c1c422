"""Person model - one member of the family tree.

A person is either a real user profile (``linked_account_id`` set) or an
ancestor placeholder added by a curator on someone's behalf. Relationships
are stored denormalized as adjacency tuples on both endpoints; only the
relationship mutator writes them.
"""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Gender(str, Enum):
    """Gender used for visual representation."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PlaceholderReason(str, Enum):
    """Why a linked profile is shown as a placeholder."""
    BLOCKED = "blocked"
    DELETED = "deleted"


ADJACENCY_FIELDS = ("parent_ids", "spouse_ids", "child_ids", "sibling_ids")


class Person(BaseModel):
    """A person in the family graph.

    Adjacency invariants (maintained by ``graph.mutator``):
    - B in A.child_ids  <=> A in B.parent_ids
    - B in A.spouse_ids <=> A in B.spouse_ids
    - B in A.sibling_ids <=> A in B.sibling_ids
    - no duplicates, no self references
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str

    birth_date: str | None = None  # ISO YYYY-MM-DD
    death_date: str | None = None
    gender: Gender | None = None
    photo_url: str | None = None
    bio: str | None = None
    phone_number: str | None = None

    parent_ids: tuple[str, ...] = ()
    spouse_ids: tuple[str, ...] = ()
    child_ids: tuple[str, ...] = ()
    sibling_ids: tuple[str, ...] = ()

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_by: str | None = None
    updated_by: str | None = None
    version: int = Field(default=1, ge=1)

    linked_account_id: str | None = None
    is_placeholder: bool = False
    placeholder_reason: PlaceholderReason | None = None
    hidden_tagged_update_ids: tuple[str, ...] = ()

    @field_validator(*ADJACENCY_FIELDS)
    @classmethod
    def _no_duplicates(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError("adjacency ids must be unique")
        return v

    @model_validator(mode="after")
    def _no_self_reference(self) -> Person:
        for field_name in ADJACENCY_FIELDS:
            if self.id in getattr(self, field_name):
                raise ValueError(f"{field_name} must not contain the person's own id")
        return self

    @property
    def is_ancestor_profile(self) -> bool:
        """True for curator-added placeholders with no linked account."""
        return self.linked_account_id is None

    def relatives(self) -> set[str]:
        """All ids this person is directly connected to."""
        return set(self.parent_ids) | set(self.spouse_ids) | set(self.child_ids) | set(self.sibling_ids)

    def touch(self, now: datetime | None = None, **changes: Any) -> Person:
        """Copy with ``changes`` applied, version bumped and updated_at refreshed."""
        return self.model_copy(
            update={
                **changes,
                "version": self.version + 1,
                "updated_at": now or datetime.now(UTC),
            }
        )


class PersonDraft(BaseModel):
    """Input for creating a person (self profile or relative placeholder)."""

    name: str = Field(min_length=1)
    birth_date: str | None = None
    death_date: str | None = None
    gender: Gender | None = None
    photo_url: str | None = None
    bio: str | None = None
    phone_number: str | None = None
    linked_account_id: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    def to_person(self, person_id: str, created_by: str | None = None, now: datetime | None = None) -> Person:
        stamp = now or datetime.now(UTC)
        return Person(
            id=person_id,
            created_at=stamp,
            updated_at=stamp,
            created_by=created_by,
            updated_by=created_by,
            **self.model_dump(),
        )


class PersonChanges(BaseModel):
    """Partial profile edit. Unset fields are left untouched."""

    name: str | None = None
    birth_date: str | None = None
    death_date: str | None = None
    gender: Gender | None = None
    photo_url: str | None = None
    bio: str | None = None
    phone_number: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("name must not be blank")
        return v

    def as_update(self) -> dict[str, Any]:
        """Only the fields the caller actually set (explicit None clears a field)."""
        data = self.model_dump(exclude_unset=True)
        # name cannot be cleared
        if data.get("name") is None:
            data.pop("name", None)
        else:
            data["name"] = data["name"].strip()
        return data
