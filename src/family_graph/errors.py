"""Exception hierarchy for family-graph.

Graph errors are raised synchronously by the pure graph functions.
Remote errors are raised by persistence adapters and are turned into
``RemoteWriteFailure`` by the optimistic coordinator after rollback.
"""
from __future__ import annotations

from typing import Any


class FamilyGraphError(Exception):
    """Base class for all family-graph errors."""


class InvalidEdgeError(FamilyGraphError, ValueError):
    """Raised when an edge would relate a person to themselves."""

    def __init__(self, person_id: str, relationship_type: str) -> None:
        super().__init__(
            f"Cannot create {relationship_type} relationship: "
            f"person {person_id} cannot be related to themselves"
        )
        self.person_id = person_id
        self.relationship_type = relationship_type


class MissingEndpointWarning(FamilyGraphError, UserWarning):
    """A referenced person does not exist in the collection.

    The mutator treats this as a no-op; it is only raised by
    ``require_endpoints`` for callers that want a hard failure.
    """

    def __init__(self, missing_ids: list[str]) -> None:
        super().__init__(f"Person(s) not found: {', '.join(missing_ids)}")
        self.missing_ids = missing_ids


class RemoteWriteFailure(FamilyGraphError):
    """Remote persistence failed; the cache was rolled back to its snapshot."""

    def __init__(self, message: str, collection: str, label: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection
        self.label = label


class ReconciliationMismatch(FamilyGraphError):
    """The server response could not be merged into the cached collection."""


class RemoteStoreError(FamilyGraphError):
    """Base class for errors reported by a persistence adapter."""


class EdgeNotFoundError(RemoteStoreError):
    """The relationship edge does not exist in the remote store."""


class PersonNotFoundError(RemoteStoreError):
    """The person does not exist in the remote store."""


class RemoteAuthorizationError(RemoteStoreError):
    """The acting account is not allowed to perform the operation."""


class PostgrestError(RemoteStoreError):
    """Error response from a PostgREST endpoint."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def code(self) -> str | None:
        """Postgres error code reported by PostgREST (e.g. ``23505``)."""
        code = self.payload.get("code")
        return str(code) if code is not None else None
