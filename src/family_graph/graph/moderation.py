"""Visibility helpers for blocked accounts.

Blocked people are turned into placeholders rather than removed, so the
tree keeps its shape for everyone else. Queries take the ids returned by
``hidden_person_ids`` as their ``exclude`` argument.
"""
from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping

from ..models.person import Person, PlaceholderReason
from ..models.records import Update

People = Mapping[str, Person]


def mark_blocked_placeholders(people: People, blocked_account_ids: Collection[str]) -> People:
    """Convert profiles linked to blocked accounts into placeholders.

    Name and adjacency are kept; photo, bio and phone number are cleared.
    Ancestor profiles (no linked account) are never affected.
    """
    if not blocked_account_ids:
        return people

    result: dict[str, Person] | None = None
    for person_id, person in people.items():
        if person.linked_account_id is None or person.linked_account_id not in blocked_account_ids:
            continue
        if person.is_placeholder and person.placeholder_reason == PlaceholderReason.BLOCKED:
            continue
        if result is None:
            result = dict(people)
        result[person_id] = person.model_copy(
            update={
                "is_placeholder": True,
                "placeholder_reason": PlaceholderReason.BLOCKED,
                "photo_url": None,
                "bio": None,
                "phone_number": None,
            }
        )
    return people if result is None else result


def hidden_person_ids(people: People, blocked_account_ids: Collection[str]) -> frozenset[str]:
    """Ids of people whose linked account is blocked."""
    if not blocked_account_ids:
        return frozenset()
    return frozenset(
        person.id
        for person in people.values()
        if person.linked_account_id is not None and person.linked_account_id in blocked_account_ids
    )


def filter_blocked_updates(
    updates: Iterable[Update],
    blocked_account_ids: Collection[str],
    people: People,
) -> list[Update]:
    """Drop updates created by, or posted to the profile of, a blocked account."""
    updates = list(updates)
    if not blocked_account_ids:
        return updates

    kept = []
    for update in updates:
        if update.created_by and update.created_by in blocked_account_ids:
            continue
        owner = people.get(update.person_id)
        if owner is not None and owner.linked_account_id and owner.linked_account_id in blocked_account_ids:
            continue
        kept.append(update)
    return kept
