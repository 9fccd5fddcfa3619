"""Async HTTP client for the notes API."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Set

import httpx
from pydantic import ValidationError

from .errors import ApiError, NotFoundError, RemoteStoreError, UnauthenticatedError
from .models import DurableNote, Identity, ShareResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api"
DEFAULT_TIMEOUT = 10.0
INVALID_BODY = "Invalid response body"


def _note_from(data: Any) -> DurableNote:
    """Read a note out of a response envelope, treating a malformed one as a server failure"""
    try:
        return DurableNote.from_api(data["note"])
    except (KeyError, TypeError, ValidationError) as exc:
        raise RemoteStoreError(status_code=200, message=INVALID_BODY) from exc


def _error_from_response(response: httpx.Response) -> ApiError:
    try:
        payload = response.json()
    except json.JSONDecodeError:
        payload = {}

    message = payload.get("error", response.reason_phrase) if isinstance(payload, dict) else response.reason_phrase

    if response.status_code == 401:
        return UnauthenticatedError(status_code=401, message=message, payload=payload)
    if response.status_code == 404:
        return NotFoundError(status_code=404, message=message, payload=payload)
    return RemoteStoreError(status_code=response.status_code, message=message, payload=payload)


class NotesClient:
    """Thin wrapper over the REST endpoints, returning client-side models."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self._token = token
        self._beacons: Set[asyncio.Task] = set()

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    async def aclose(self) -> None:
        if self._beacons:
            await asyncio.gather(*self._beacons, return_exceptions=True)
        await self._client.aclose()

    async def __aenter__(self) -> "NotesClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def request(self, method: str, path: str, *, json_body: Optional[Dict[str, Any]] = None) -> Any:
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            response = await self._client.request(method, path, json=json_body, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteStoreError(status_code=0, message=str(exc) or type(exc).__name__) from exc

        if not 200 <= response.status_code < 300:
            raise _error_from_response(response)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteStoreError(status_code=response.status_code, message=INVALID_BODY) from exc

    # Authenticated notes

    async def list_notes(self) -> List[DurableNote]:
        data = await self.request("GET", "/notes")
        try:
            return [DurableNote.from_api(note) for note in data["notes"]]
        except (KeyError, TypeError, ValidationError) as exc:
            raise RemoteStoreError(status_code=200, message=INVALID_BODY) from exc

    async def create_note(self, *, title: Optional[str] = None, content: Optional[str] = None) -> DurableNote:
        body = {key: value for key, value in (("title", title), ("content", content)) if value is not None}
        data = await self.request("POST", "/notes", json_body=body)
        return _note_from(data)

    async def update_note(self, note_id: str, **changes: str) -> DurableNote:
        data = await self.request("PUT", f"/notes/{note_id}", json_body=changes)
        return _note_from(data)

    async def delete_note(self, note_id: str) -> None:
        await self.request("DELETE", f"/notes/{note_id}")

    async def share_note(self, note_id: str) -> ShareResult:
        data = await self.request("POST", f"/notes/{note_id}/share")
        return ShareResult(
            note=_note_from(data),
            public_url=data["publicUrl"],
            public_id=data["publicId"],
        )

    async def unshare_note(self, note_id: str) -> DurableNote:
        data = await self.request("DELETE", f"/notes/{note_id}/share")
        return _note_from(data)

    async def me(self) -> Identity:
        data = await self.request("GET", "/users/me")
        return Identity.model_validate(data["user"])

    # Anonymous reads

    async def get_public_note(self, public_id: str) -> Dict[str, Any]:
        data = await self.request("GET", f"/public/{public_id}")
        return data["note"]

    async def leaderboard(self) -> List[Dict[str, Any]]:
        data = await self.request("GET", "/leaderboard")
        return data["leaderboard"]

    # Unload beacon

    def send_beacon(self, note_id: str, changes: Dict[str, str]) -> None:
        """Queue a best-effort save and return immediately.

        There is no delivery confirmation: the outcome is only logged, and the
        caller must keep treating the changes as unsaved.
        """
        task = asyncio.get_running_loop().create_task(self._deliver_beacon(note_id, dict(changes)))
        self._beacons.add(task)
        task.add_done_callback(self._beacons.discard)

    async def _deliver_beacon(self, note_id: str, changes: Dict[str, str]) -> None:
        try:
            await self.request("POST", f"/notes/{note_id}", json_body=changes)
        except ApiError as exc:
            logger.warning("Beacon for note %s was not delivered: %s", note_id, exc)
