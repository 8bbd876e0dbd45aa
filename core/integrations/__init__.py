"""
Bookstore Core Integrations: collection server access.

Provides:
- ResourceClient: async HTTP client for JSON collection endpoints
- ResourceRequest / ResourceResponse: request and response envelope
- as_list: single-object-or-list payload normalization
"""
from core.integrations.resource_client import (
    ResourceClient,
    ResourceRequest,
    ResourceResponse,
    as_list,
)

__all__ = [
    "ResourceClient",
    "ResourceRequest",
    "ResourceResponse",
    "as_list",
]
