"""PostgREST remote store.

Talks to a hosted PostgREST endpoint (``{url}/rest/v1/<table>``) with
httpx. Requests are authenticated with the project API key plus an
optional user access token; row-level security on the server remains the
real authority, the ownership checks here only give earlier, clearer
errors.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_incrementing

from ..errors import EdgeNotFoundError, PersonNotFoundError, PostgrestError, RemoteAuthorizationError
from ..models.edge import RelationshipEdge, RelationshipType, StoredEdge
from ..models.person import Person, PersonChanges, PersonDraft
from ..models.records import BlockRecord
from .base import RemotePersistenceAdapter
from .mappers import (
    block_from_row,
    changes_to_row,
    draft_to_row,
    edge_from_row,
    edge_to_row,
    person_from_row,
)

logger = structlog.get_logger(__name__)

UNIQUE_VIOLATION = "23505"


class _ServerError(Exception):
    """5xx response, retried before being reported."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class PostgrestRemoteStore(RemotePersistenceAdapter):
    """Remote store backed by PostgREST.

    Example:
        async with PostgrestRemoteStore(url, api_key, access_token=jwt) as store:
            people = await store.fetch_all_people()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            base_url: Project URL (without the ``/rest/v1`` suffix)
            api_key: Project API key, sent as ``apikey``
            access_token: User JWT; defaults to the API key
            timeout: Per-request timeout in seconds
            max_retries: Attempts per request for transport errors and 5xx
            retry_delay: Base delay for linear backoff
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
        """
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._http = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Accept": "application/json",
            },
        )

    async def __aenter__(self) -> PostgrestRemoteStore:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    @staticmethod
    def _payload(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {"message": response.text}
        return data if isinstance(data, dict) else {"details": data}

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        returning: bool = True,
    ) -> list[dict[str, Any]]:
        """Issue a request and return the JSON rows.

        Retries with linear backoff on transport errors and 5xx responses;
        other error statuses raise immediately.
        """
        headers = {"Prefer": "return=representation"} if returning else {}

        def _log_retry(state) -> None:
            logger.warning(
                "postgrest_retry",
                table=table,
                attempt=state.attempt_number,
                error=str(state.outcome.exception()),
            )

        @retry(
            reraise=True,
            stop=stop_after_attempt(self.max_retries),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            retry=retry_if_exception_type((httpx.TransportError, _ServerError)),
            before_sleep=_log_retry,
        )
        async def _send() -> httpx.Response:
            response = await self._http.request(method, f"/{table}", params=params, json=body, headers=headers)
            if response.status_code >= 500:
                raise _ServerError(response)
            return response

        try:
            response = await _send()
        except httpx.TransportError as e:
            raise PostgrestError(f"{method} {table} failed: {e}") from e
        except _ServerError as e:
            response = e.response

        if response.status_code >= 400:
            payload = self._payload(response)
            raise PostgrestError(
                payload.get("message") or f"{method} {table} failed with HTTP {response.status_code}",
                response.status_code,
                payload,
            )

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    async def fetch_all_people(self) -> list[Person]:
        rows = await self._request("GET", "people", params={"select": "*"})
        return [person_from_row(row) for row in rows]

    async def _get_person(self, person_id: str) -> Person:
        rows = await self._request("GET", "people", params={"select": "*", "user_id": f"eq.{person_id}"})
        if not rows:
            raise PersonNotFoundError(f"Person not found: {person_id}")
        return person_from_row(rows[0])

    async def create_person(self, actor_id: str, draft: PersonDraft) -> Person:
        rows = await self._request("POST", "people", body=draft_to_row(draft, actor_id))
        if not rows:
            raise PostgrestError("Failed to create person: no data returned")
        return person_from_row(rows[0])

    async def update_person(self, actor_id: str, person_id: str, changes: PersonChanges) -> Person:
        current = await self._get_person(person_id)
        if actor_id not in (current.linked_account_id, current.created_by):
            raise RemoteAuthorizationError("You can only update profiles you own or created")

        body = changes_to_row(changes)
        body.update(
            updated_by=actor_id,
            updated_at=datetime.now(UTC).isoformat(),
            version=current.version + 1,
        )
        rows = await self._request("PATCH", "people", params={"user_id": f"eq.{person_id}"}, body=body)
        if not rows:
            raise PersonNotFoundError(f"Person not found: {person_id}")
        return person_from_row(rows[0])

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    async def fetch_all_edges(self) -> list[StoredEdge]:
        rows = await self._request("GET", "relationships", params={"select": "*", "order": "created_at.asc"})
        return [edge_from_row(row) for row in rows]

    async def _find_existing_edge_id(self, edge: RelationshipEdge) -> str | None:
        canonical = edge.canonical()
        a, b = canonical.endpoints
        params = {"select": "*"}
        if canonical.relationship_type.is_symmetric:
            params["relationship_type"] = f"eq.{canonical.relationship_type.value}"
            params["or"] = f"(and(person_one_id.eq.{a},person_two_id.eq.{b}),and(person_one_id.eq.{b},person_two_id.eq.{a}))"
        else:
            params["relationship_type"] = f"in.({RelationshipType.PARENT.value},{RelationshipType.CHILD.value})"
            params["person_one_id"] = f"eq.{a}"
            params["person_two_id"] = f"eq.{b}"

        fingerprint = edge.fingerprint()
        for row in await self._request("GET", "relationships", params=params):
            stored = edge_from_row(row)
            if stored.edge.fingerprint() == fingerprint:
                return stored.edge_id
        return None

    async def create_relationship_edge(self, actor_id: str, edge: RelationshipEdge) -> str:
        existing = await self._find_existing_edge_id(edge)
        if existing is not None:
            logger.debug("edge_exists", edge_id=existing)
            return existing

        try:
            rows = await self._request("POST", "relationships", body=edge_to_row(edge, actor_id))
        except PostgrestError as e:
            if e.status_code != 409 and e.code != UNIQUE_VIOLATION:
                raise
            # created concurrently
            existing = await self._find_existing_edge_id(edge)
            if existing is None:
                raise
            logger.info("edge_create_conflict_resolved", edge_id=existing)
            return existing

        if not rows:
            raise PostgrestError("Failed to create relationship: no data returned")
        return str(rows[0]["id"])

    async def delete_relationship_edge(self, edge_id: str, actor_id: str) -> None:
        rows = await self._request(
            "GET", "relationships", params={"select": "created_by", "id": f"eq.{edge_id}"}
        )
        if not rows:
            raise EdgeNotFoundError(f"Relationship not found: {edge_id}")
        if rows[0].get("created_by") != actor_id:
            raise RemoteAuthorizationError("You can only delete relationships you created")
        await self._request("DELETE", "relationships", params={"id": f"eq.{edge_id}"}, returning=False)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    async def fetch_blocks(self, actor_id: str) -> list[BlockRecord]:
        rows = await self._request("GET", "blocks", params={"select": "*", "blocker_id": f"eq.{actor_id}"})
        return [block_from_row(row) for row in rows]

    async def create_block(self, actor_id: str, blocked_account_id: str) -> BlockRecord:
        body = {"blocker_id": actor_id, "blocked_id": blocked_account_id}
        try:
            rows = await self._request("POST", "blocks", body=body)
        except PostgrestError as e:
            if e.code != UNIQUE_VIOLATION:
                raise
            rows = await self._request(
                "GET",
                "blocks",
                params={"select": "*", "blocker_id": f"eq.{actor_id}", "blocked_id": f"eq.{blocked_account_id}"},
            )
        if not rows:
            raise PostgrestError("Failed to create block: no data returned")
        return block_from_row(rows[0])

    async def delete_block(self, actor_id: str, blocked_account_id: str) -> None:
        await self._request(
            "DELETE",
            "blocks",
            params={"blocker_id": f"eq.{actor_id}", "blocked_id": f"eq.{blocked_account_id}"},
            returning=False,
        )
