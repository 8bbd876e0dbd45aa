"""Dataclass-based domain configuration pattern.

Each section is a frozen dataclass with sensible defaults. The top-level
config can be built from defaults or from environment variables once at
process start, then passed explicitly to the client, loader and editor.

Example domain: a bookstore chain reading its catalogue from a JSON
collection server.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_flag(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ApiConfig:
    """Where collection endpoints live.

    ``use_mock`` picks the mock server URL over the production one. When the
    chosen URL is empty, resources resolve to static ``<name>.json`` files.
    """

    use_mock: bool = False
    mock_api_url: str = ""
    production_api_url: str = ""
    static_base_url: str = "http://localhost:5173/data"

    @property
    def api_url(self) -> str:
        return self.mock_api_url if self.use_mock else self.production_api_url

    @property
    def uses_static_files(self) -> bool:
        return not self.api_url

    def resolve_url(self, resource: str) -> str:
        """Return the full URL for a resource name or sub-path.

        ``resolve_url("inventory/7")`` -> ``{api_url}/inventory/7``, or
        ``{static_base_url}/inventory/7.json`` without an API URL.
        """
        resource = resource.strip("/")
        if self.api_url:
            return f"{self.api_url.rstrip('/')}/{resource}"
        return f"{self.static_base_url.rstrip('/')}/{resource}.json"


@dataclass(frozen=True)
class InventoryConfig:
    """Inventory editing behaviour."""

    rollback_on_failure: bool = True
    available_books_limit: int = 7
    unknown_author_label: str = "Unknown Author"
    unknown_store_label: str = "Unknown Store"


@dataclass(frozen=True)
class SessionConfig:
    """Signed-in user persistence."""

    session_file: Path = field(
        default_factory=lambda: Path.home() / ".bookstore" / "session.json"
    )


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BookstoreConfig:
    """Complete configuration for the bookstore vertical.

    Usage::

        config = BookstoreConfig.from_env()
        client = ResourceClient(config.api)
        library = LibraryData(client, config)
    """

    api: ApiConfig = field(default_factory=ApiConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def default(cls) -> "BookstoreConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "BOOKSTORE_") -> "BookstoreConfig":
        """Create config from environment variables.

        Example: BOOKSTORE_USE_MOCK=true BOOKSTORE_API_URL_MOCK=http://localhost:3001
        """
        api_defaults = ApiConfig()
        api = ApiConfig(
            use_mock=_env_flag(os.getenv(f"{prefix}USE_MOCK")),
            mock_api_url=os.getenv(f"{prefix}API_URL_MOCK", api_defaults.mock_api_url),
            production_api_url=os.getenv(
                f"{prefix}API_URL_PRODUCTION", api_defaults.production_api_url
            ),
            static_base_url=os.getenv(
                f"{prefix}STATIC_BASE_URL", api_defaults.static_base_url
            ),
        )

        inventory = InventoryConfig(
            rollback_on_failure=_env_flag(
                os.getenv(f"{prefix}ROLLBACK_ON_FAILURE"), default=True
            ),
        )

        overrides = {}
        session_file = os.getenv(f"{prefix}SESSION_FILE")
        if session_file:
            overrides["session"] = SessionConfig(session_file=Path(session_file))

        return cls(api=api, inventory=inventory, **overrides)
