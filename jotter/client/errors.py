"""Exception hierarchy for the notes API client."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(eq=False)
class ApiError(Exception):
    """Base error carrying the status code and the API's ``error`` message."""

    status_code: int
    message: str
    payload: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"


class UnauthenticatedError(ApiError):
    """Raised for HTTP 401 responses."""


class NotFoundError(ApiError):
    """Raised for HTTP 404 responses."""


class RemoteStoreError(ApiError):
    """Raised for server failures and for requests that never got an answer."""


def is_transient(error: BaseException) -> bool:
    return isinstance(error, RemoteStoreError)
