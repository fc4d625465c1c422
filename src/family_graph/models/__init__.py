"""Pydantic data models."""

from .edge import RelationshipEdge, RelationshipType, StoredEdge
from .identifiers import ConfirmedId, PersonRef, TemporaryId, as_ref
from .person import Gender, Person, PersonChanges, PersonDraft, PlaceholderReason
from .records import BlockRecord, InvitationLink, Update

__all__ = [
    "Person",
    "PersonDraft",
    "PersonChanges",
    "Gender",
    "PlaceholderReason",
    "RelationshipEdge",
    "RelationshipType",
    "StoredEdge",
    "TemporaryId",
    "ConfirmedId",
    "PersonRef",
    "as_ref",
    "Update",
    "BlockRecord",
    "InvitationLink",
]
