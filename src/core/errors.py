"""Error taxonomy of the client.

Every failure surfaces to the immediate caller; nothing here retries or
recovers. All errors share `CmsClientError` so callers (and the CLI) can catch
the whole family at once.
"""

from __future__ import annotations

from typing import Any


def _status_code(value: object, fallback: int) -> int:
    try:
        return int(value) if value else fallback
    except (TypeError, ValueError):
        return fallback


class CmsClientError(Exception):
    """Base class for every error raised by the client."""


class NotFoundConfigError(CmsClientError):
    """The requested content type was never registered with the client."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Content type '{name}' not found: register it in `content_types`")


class TransportError(CmsClientError):
    """No response was received (DNS, refused connection, transport timeout...)."""

    status: int | None = None

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ApiError(CmsClientError):
    """The server answered with a non-success status."""

    def __init__(
        self,
        *,
        status: int,
        name: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status = status
        self.name = name
        self.message = message
        self.details = details or {}
        super().__init__(f"{status} {name}: {message}")

    @classmethod
    def from_body(cls, status: int, reason: str, body: object) -> "ApiError":
        """Build from the server's `{"error": {...}}` body, or from the HTTP status."""

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            details = error.get("details")
            return cls(
                status=_status_code(error.get("status"), status),
                name=str(error.get("name") or "ApiError"),
                message=str(error.get("message") or reason),
                details=details if isinstance(details, dict) else {},
            )
        return cls(status=status, name="HttpError", message=reason or f"HTTP {status}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "name": self.name,
            "message": self.message,
            "details": self.details,
        }


class NormalisationError(CmsClientError):
    """A response item could not be normalised (missing `id`, bad shape, too deep)."""

    def __init__(self, message: str, item: object = None) -> None:
        self.item = item
        super().__init__(message)


class TraversalTimeoutError(CmsClientError, TimeoutError):
    """`fetch_all` exceeded its wall-clock budget between two page requests."""

    def __init__(self, *, timeout_ms: float, elapsed_ms: float, collected: int) -> None:
        self.timeout_ms = timeout_ms
        self.elapsed_ms = elapsed_ms
        self.collected = collected
        super().__init__(
            f"fetch_all: timeout of {timeout_ms:g} ms exceeded after {elapsed_ms:.0f} ms "
            f"({collected} items collected)"
        )
