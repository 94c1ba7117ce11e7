"""
Per-user cache for AI suggestions.

Fresh entries are served directly. Concurrent callers for the same user share
one in-flight producer call. Expired entries are kept so a failed refresh can
still answer with the last good suggestions.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pennywise.llm.groq import LLMError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheEntry:
    suggestions: List[str]
    stored_at: float


class SuggestionCache:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, Future] = {}

    def _stale(self, key: str) -> Optional[List[str]]:
        with self._lock:
            entry = self._entries.get(key)
        return list(entry.suggestions) if entry else None

    def is_fresh(self, user_id) -> bool:
        with self._lock:
            entry = self._entries.get(str(user_id))
            return bool(entry) and self._clock() - entry.stored_at < self.ttl_seconds

    def get_or_compute(self, user_id, producer: Callable[[], List[str]]) -> List[str]:
        """Return suggestions for `user_id`, calling `producer` at most once per refresh."""
        key = str(user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry and self._clock() - entry.stored_at < self.ttl_seconds:
                logger.info("[CACHE HIT] Returning cached suggestions for user %s", key)
                return list(entry.suggestions)
            pending = self._pending.get(key)
            if pending is None:
                pending = Future()
                self._pending[key] = pending
                owner = True
            else:
                owner = False

        if not owner:
            logger.info("[PENDING] Waiting for in-flight request for user %s", key)
            try:
                return list(pending.result())
            except Exception:
                stale = self._stale(key)
                if stale is None:
                    raise
                logger.info("[FALLBACK] Pending request failed, returning stale cache for user %s", key)
                return stale

        logger.info("[API CALL] Fetching fresh suggestions for user %s", key)
        try:
            suggestions = list(producer())
        except Exception as exc:
            stale = self._stale(key)
            if isinstance(exc, LLMError) and exc.is_rate_limit and stale is not None:
                logger.warning("[RATE LIMIT] Returning stale cache for user %s", key)
                pending.set_result(stale)
                return stale
            pending.set_exception(exc)
            raise
        else:
            with self._lock:
                self._entries[key] = CacheEntry(suggestions, self._clock())
            logger.info("[SUCCESS] Cached %d suggestions for user %s", len(suggestions), key)
            pending.set_result(suggestions)
            return list(suggestions)
        finally:
            with self._lock:
                self._pending.pop(key, None)
