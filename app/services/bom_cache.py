# app/services/bom_cache.py
"""
Per-build cache of generated BOMs.

Entries are keyed by (order_id, build_number) and remember the SHA-256
fingerprint of the configuration they were generated from. A lookup with a
different fingerprint is a miss, and saving a configuration drops the entry.
Results go in and come out as deep copies, so a caller that attaches tracking
to its tree never changes what the next caller gets.
"""
from __future__ import annotations

import copy
import hashlib
import json
import logging
import threading
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


def configuration_fingerprint(*parts: Any) -> str:
    """
    Return a SHA256 hex digest of the canonical JSON of `parts`.

    Pydantic models are dumped in JSON mode first; keys are sorted so the
    digest does not depend on field order.
    """
    payload = [p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in parts]
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class BomCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, Tuple[str, Any]] = {}

    def get(self, order_id: str, build_number: str, fingerprint: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get((order_id, build_number))
        if entry is None:
            return None
        cached_fingerprint, result = entry
        if cached_fingerprint != fingerprint:
            logger.debug(
                "Stale BOM cache entry for order=%s build=%s", order_id, build_number
            )
            return None
        return copy.deepcopy(result)

    def put(self, order_id: str, build_number: str, fingerprint: str, result: Any) -> None:
        with self._lock:
            self._entries[(order_id, build_number)] = (fingerprint, copy.deepcopy(result))

    def invalidate(self, order_id: str, build_number: Optional[str] = None) -> int:
        """Drop one build's entry, or every entry of the order when build_number is None."""
        with self._lock:
            keys = [
                key
                for key in self._entries
                if key[0] == order_id and (build_number is None or key[1] == build_number)
            ]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug("Invalidated %d BOM cache entries for order=%s", len(keys), order_id)
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


bom_cache = BomCache()
