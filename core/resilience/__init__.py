"""
Bookstore Core Resilience: request sequencing primitives.

Provides:
- GenerationCounter: discard responses of superseded requests
"""
from core.resilience.generations import (
    GenerationCounter,
    GenerationRecord,
)

__all__ = [
    "GenerationCounter",
    "GenerationRecord",
]
