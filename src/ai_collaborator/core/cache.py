"""TTL response cache.

Entries are keyed by a fingerprint of every input that shapes a request:
the final prompt text plus the sampling parameters. Expiry is checked lazily
on lookup; there is no background sweep.
"""

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Callable

from ..logging import get_logger
from ..types import GenerationParams

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached output and when it was stored."""
    output: str
    created_at: float

    def is_valid(self, now: float, ttl: float) -> bool:
        return now - self.created_at < ttl


def fingerprint(prompt: str, params: GenerationParams) -> str:
    """Build a normalized cache key for a request.

    The key covers the optimized prompt (which already folds in context such
    as language or conversation history), the model and the sampling
    parameters.
    """
    payload = {
        "prompt": prompt,
        "model": params.model,
        "temperature": round(params.temperature, 6),
        "max_tokens": params.max_tokens,
        "top_p": round(params.top_p, 6),
        "stop": list(params.stop),
    }
    encoded = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class ResponseCache:
    """Bounded cache whose entries expire ``ttl`` seconds after insertion."""

    def __init__(
        self,
        ttl: float = 600.0,
        max_entries: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> str | None:
        """Return the cached output, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if not entry.is_valid(self._clock(), self.ttl):
            del self._entries[key]
            self.misses += 1
            logger.debug(f"cache entry expired: {key[:12]}")
            return None
        self.hits += 1
        return entry.output

    def put(self, key: str, output: str) -> None:
        # re-inserting moves the key to the end of the eviction order
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(output=output, created_at=self._clock())
        while len(self._entries) > self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def purge_expired(self) -> int:
        """Drop expired entries now. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now, self.ttl)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
