"""Person identifiers: temporary (client-side) or confirmed (server-assigned).

A person created optimistically lives in the cache under a temporary id
until the server answers with its real id. Keeping the two kinds as
distinct types makes the swap explicit wherever it happens.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from uuid_utils import uuid7 as _uuid7

TEMPORARY_PREFIX = "tmp-"


def uuid7() -> UUID:
    """Generate a UUID7 compatible with stdlib UUID."""
    return UUID(str(_uuid7()))


@dataclass(frozen=True)
class TemporaryId:
    """Client-generated placeholder id, valid only until reconciliation."""

    local_id: str

    @classmethod
    def new(cls) -> TemporaryId:
        return cls(f"{TEMPORARY_PREFIX}{uuid7()}")

    @property
    def value(self) -> str:
        return self.local_id

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.local_id


@dataclass(frozen=True)
class ConfirmedId:
    """Server-assigned person id."""

    server_id: str

    @property
    def value(self) -> str:
        return self.server_id

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.server_id


PersonRef = TemporaryId | ConfirmedId


def as_ref(value: PersonRef | str) -> PersonRef:
    """Wrap a raw id string; strings with the temporary prefix become TemporaryId."""
    if isinstance(value, (TemporaryId, ConfirmedId)):
        return value
    if value.startswith(TEMPORARY_PREFIX):
        return TemporaryId(value)
    return ConfirmedId(value)
