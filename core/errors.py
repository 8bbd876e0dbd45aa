"""Error taxonomy shared by the client, the loader and the inventory editor.

Referential gaps (a foreign key with no loaded entity) are not errors;
views substitute a sentinel label instead.
"""
from __future__ import annotations


class LibraryError(Exception):
    """Base class for all bookstore data-layer errors."""


class NetworkFailure(LibraryError):
    """A request was rejected by the transport or answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        url: str = "",
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        # Transport errors and 5xx may succeed on a second attempt
        return self.status_code is None or self.status_code >= 500


class LoadFailure(NetworkFailure):
    """One of the concurrent collection fetches failed; nothing was committed."""

    def __init__(self, message: str, causes: list[BaseException] | None = None):
        causes = causes or []
        first = next((c for c in causes if isinstance(c, NetworkFailure)), None)
        super().__init__(
            message,
            url=first.url if first else "",
            status_code=first.status_code if first else None,
        )
        self.causes = causes

    @property
    def retryable(self) -> bool:
        return True


class ValidationFailure(LibraryError, ValueError):
    """Local input was rejected before any request was sent."""


class AuthenticationRequired(LibraryError):
    """A mutation was attempted without a signed-in user."""


class InvalidTransition(LibraryError, ValueError):
    """An edit-state transition not allowed by the transition table."""
