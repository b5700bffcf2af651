from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from precalc.config import settings
from precalc.db import get_db
from precalc.metrics import record_event


logger = logging.getLogger(__name__)

_MISSING = object()


def cache_key(prefix: str, *parts: Any) -> str:
    if not parts:
        return prefix
    return ':'.join([prefix, *(str(part) for part in parts)])


class CacheBackend:
    def get(self, key: str) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: int) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def delete_prefix(self, prefix: str) -> None:
        raise NotImplementedError


class MemoryCacheBackend(CacheBackend):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return _MISSING
            expires_at, value = item
            if time.monotonic() >= expires_at:
                self._store.pop(key, None)
                return _MISSING
            return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        expires_at = time.monotonic() + max(1, int(ttl))
        with self._lock:
            self._store[key] = (expires_at, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        with self._lock:
            keys = [key for key in self._store.keys() if key.startswith(prefix)]
            for key in keys:
                self._store.pop(key, None)


@dataclass
class DataCache:
    """Database session plus a memo of rows already read during one request.

    One instance is created per request and handed to every pacing function,
    so concurrent requests never share a session or a memo. ``None`` results
    are memoized too; a lookup miss is not retried within the request.
    """

    db: Session
    backend: CacheBackend = field(default_factory=MemoryCacheBackend)
    ttl: int = settings.default_cache_ttl

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        value = self.backend.get(key)
        if value is not _MISSING:
            record_event('cache_hit')
            logger.debug('cache hit: %s', key)
            return value
        record_event('cache_miss')
        logger.debug('cache miss: %s', key)
        value = loader()
        self.backend.set(key, value, self.ttl)
        return value

    def invalidate(self, key: str) -> None:
        self.backend.delete(key)
        record_event('cache_invalidate')
        logger.debug('cache invalidate: %s', key)

    def invalidate_prefix(self, prefix: str) -> None:
        self.backend.delete_prefix(prefix)
        record_event('cache_invalidate')
        logger.debug('cache invalidate prefix: %s', prefix)


def get_data_cache(db: Session = Depends(get_db)) -> Iterator[DataCache]:
    yield DataCache(db=db)
