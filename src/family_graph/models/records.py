"""Records adjacent to the graph (feed and moderation).

The graph core does not interpret these; they are carried so the
persistence adapters and moderation helpers have typed shapes to pass
through.
"""
from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Update(BaseModel):
    """A photo/story posted to a person's profile wall."""

    id: str
    person_id: str
    title: str
    photo_url: str = ""
    caption: str | None = None
    is_public: bool = True
    tagged_person_ids: tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_by: str | None = None
    deleted_at: datetime | None = None


class BlockRecord(BaseModel):
    """One account blocking another."""

    blocker_id: str
    blocked_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))



class InvitationLink(BaseModel):
    """Token that lets an account claim an ancestor profile."""

    id: str
    target_person_id: str
    token: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_by: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at
