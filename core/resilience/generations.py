"""
Generation Counter: Discard Superseded Responses.

Every request for a key (a load, an inventory row) takes the next
generation number. When its response arrives, only the holder of the
current generation may apply it; older responses are stale.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Hashable


@dataclass
class GenerationRecord:
    """Latest generation issued for a key."""
    key: Hashable
    generation: int = 0
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class GenerationCounter:
    """In-memory per-key generation counter."""

    def __init__(self):
        self._records: dict[Hashable, GenerationRecord] = {}

    def next(self, key: Hashable) -> int:
        """Issue a new generation for ``key``, superseding all earlier ones."""
        record = self._records.get(key)
        if record is None:
            record = GenerationRecord(key=key)
            self._records[key] = record
        record.generation += 1
        record.issued_at = datetime.now(timezone.utc)
        return record.generation

    def current(self, key: Hashable) -> int:
        record = self._records.get(key)
        return record.generation if record else 0

    def is_current(self, key: Hashable, generation: int) -> bool:
        return self.current(key) == generation

    def forget(self, key: Hashable) -> bool:
        return self._records.pop(key, None) is not None
