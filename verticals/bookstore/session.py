"""Signed-in user session.

An explicit object replaces ambient browser storage: ``hydrate()`` restores
a persisted user at start-up, ``sign_in()`` checks demo credentials against
the ``users`` collection, ``sign_out()`` clears memory and disk. Only
``is_authenticated`` is consulted elsewhere, to gate inventory mutations.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from core.errors import LibraryError
from core.integrations.resource_client import ResourceClient
from verticals.bookstore.models.schemas import User


@dataclass
class SignInResult:
    success: bool
    user: Optional[User] = None
    error: Optional[str] = None


class Session:
    """Current user, persisted as JSON at ``path`` (password never stored)."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def hydrate(self) -> Optional[User]:
        """Load the persisted user, discarding an unreadable file."""
        if not self.path.exists():
            return None
        try:
            self.user = User.model_validate(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError, ValidationError) as exc:
            logger.error("Error parsing stored user: {}", exc)
            self._discard_file()
            self.user = None
        return self.user

    async def sign_in(
        self, client: ResourceClient, username: str, password: str
    ) -> SignInResult:
        try:
            users = [User.model_validate(u) for u in await client.list("users")]
        except (LibraryError, ValidationError) as exc:
            logger.error("Sign in error: {}", exc)
            return SignInResult(success=False, error="An error occurred during sign in")

        found = next(
            (u for u in users if u.username == username and u.password == password),
            None,
        )
        if found is None:
            return SignInResult(success=False, error="Invalid username or password")

        self.user = found.model_copy(update={"password": None})
        self._persist()
        logger.info("Signed in as {}", self.user.username)
        return SignInResult(success=True, user=self.user)

    def sign_out(self) -> None:
        self.user = None
        self._discard_file()

    def _discard_file(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove stored user at {}: {}", self.path, exc)

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = self.user.model_dump(exclude={"password"}, mode="json")
        self.path.write_text(json.dumps(data), encoding="utf-8")
