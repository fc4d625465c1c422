"""Row <-> model mapping shared by the SQL and HTTP adapters.

Database rows use snake_case column names from the hosted schema:
``people`` is keyed by ``user_id`` and links to an authenticated account
through ``linked_auth_user_id``; ``relationships`` stores one row per edge.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from ..errors import ReconciliationMismatch
from ..models.edge import RelationshipEdge, RelationshipType, StoredEdge
from ..models.person import Gender, Person, PersonChanges, PersonDraft
from ..models.records import BlockRecord

PEOPLE_COLUMNS = (
    "user_id",
    "name",
    "birth_date",
    "death_date",
    "gender",
    "photo_url",
    "bio",
    "phone_number",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
    "version",
    "linked_auth_user_id",
)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp (``Z`` suffix accepted); naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        return datetime.now(UTC)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def person_from_row(row: dict[str, Any]) -> Person:
    """Map a ``people`` row to a Person with empty adjacency.

    Raises:
        ReconciliationMismatch: If the row lacks an id or fails validation
    """
    person_id = row.get("user_id") or row.get("id")
    if not person_id:
        raise ReconciliationMismatch("Database response missing user_id")
    try:
        return Person(
            id=str(person_id),
            name=row.get("name") or "",
            birth_date=row.get("birth_date") or None,
            death_date=row.get("death_date") or None,
            gender=Gender(row["gender"]) if row.get("gender") else None,
            photo_url=row.get("photo_url") or None,
            bio=row.get("bio") or None,
            phone_number=row.get("phone_number") or None,
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            created_by=row.get("created_by") or None,
            updated_by=row.get("updated_by") or None,
            version=row.get("version") or 1,
            linked_account_id=row.get("linked_auth_user_id") or None,
        )
    except (ValidationError, ValueError) as e:
        raise ReconciliationMismatch(f"Unexpected people row shape: {e}") from e


def person_to_row(person: Person) -> dict[str, Any]:
    return {
        "user_id": person.id,
        "name": person.name,
        "birth_date": person.birth_date,
        "death_date": person.death_date,
        "gender": person.gender.value if person.gender else None,
        "photo_url": person.photo_url,
        "bio": person.bio,
        "phone_number": person.phone_number,
        "created_at": person.created_at.isoformat(),
        "updated_at": person.updated_at.isoformat(),
        "created_by": person.created_by,
        "updated_by": person.updated_by,
        "version": person.version,
        "linked_auth_user_id": person.linked_account_id,
    }


def draft_to_row(draft: PersonDraft, actor_id: str) -> dict[str, Any]:
    return {
        "name": draft.name,
        "birth_date": draft.birth_date,
        "death_date": draft.death_date,
        "gender": draft.gender.value if draft.gender else None,
        "photo_url": draft.photo_url,
        "bio": draft.bio,
        "phone_number": draft.phone_number,
        "created_by": actor_id,
        "linked_auth_user_id": draft.linked_account_id,
    }


def changes_to_row(changes: PersonChanges) -> dict[str, Any]:
    """Only the columns being changed; explicit None clears a column."""
    row = changes.as_update()
    if "gender" in row:
        row["gender"] = row["gender"].value if row["gender"] else None
    return row


def edge_from_row(row: dict[str, Any]) -> StoredEdge:
    try:
        return StoredEdge(
            edge_id=str(row["id"]),
            edge=RelationshipEdge(
                relationship_type=RelationshipType(row["relationship_type"]),
                person_one_id=str(row["person_one_id"]),
                person_two_id=str(row["person_two_id"]),
            ),
            created_by=row.get("created_by") or None,
            created_at=parse_timestamp(row.get("created_at")),
        )
    except (KeyError, ValidationError, ValueError) as e:
        raise ReconciliationMismatch(f"Unexpected relationships row shape: {e}") from e


def edge_to_row(edge: RelationshipEdge, actor_id: str) -> dict[str, Any]:
    return {
        "person_one_id": edge.person_one_id,
        "person_two_id": edge.person_two_id,
        "relationship_type": edge.relationship_type.value,
        "created_by": actor_id,
    }


def block_from_row(row: dict[str, Any]) -> BlockRecord:
    return BlockRecord(
        blocker_id=str(row["blocker_id"]),
        blocked_id=str(row["blocked_id"]),
        created_at=parse_timestamp(row.get("created_at")),
    )
