"""Tag-invalidated report cache fronting the report store.

Entries never expire; correctness depends on explicit invalidation.

Key format:
    report:{kind}:{subject}
    report_list:{subject}

Tags:
    subject:{subject}, kind:{kind}, report_list, report_list:{subject}
"""

import logging
import threading
from typing import Dict, Iterable, Optional, Protocol, Set

import redis

logger = logging.getLogger(__name__)

REPORT_LIST_TAG = "report_list"


def report_key(kind: str, subject: str) -> str:
    return f"report:{kind}:{subject}"


def listing_key(subject: str) -> str:
    return f"report_list:{subject}"


def subject_tag(subject: str) -> str:
    return f"subject:{subject}"


def kind_tag(kind: str) -> str:
    return f"kind:{kind}"


def listing_tag(subject: str) -> str:
    return f"{REPORT_LIST_TAG}:{subject}"


def report_tags(kind: str, subject: str) -> list:
    """Tags attached to a cached report."""
    return [subject_tag(subject), kind_tag(kind), REPORT_LIST_TAG]


def listing_tags(subject: str) -> list:
    """Tags attached to a cached report listing."""
    return [subject_tag(subject), REPORT_LIST_TAG, listing_tag(subject)]


class ReportCache(Protocol):
    """Key -> bytes cache with tag-based invalidation."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes, tags: Iterable[str] = ()) -> None:
        ...

    def invalidate_by_tag(self, tag: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryReportCache:
    """Process-local cache used when no Redis is configured."""

    def __init__(self):
        self._values: Dict[str, bytes] = {}
        self._tags: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: bytes, tags: Iterable[str] = ()) -> None:
        with self._lock:
            self._forget(key)
            self._values[key] = value
            for tag in tags:
                self._tags.setdefault(tag, set()).add(key)

    def invalidate_by_tag(self, tag: str) -> None:
        with self._lock:
            for key in self._tags.pop(tag, set()):
                self._forget(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._forget(key)

    def _forget(self, key: str) -> None:
        # Caller holds the lock; tag sets only ever hold live keys
        self._values.pop(key, None)
        for tag in [t for t, keys in self._tags.items() if key in keys]:
            self._tags[tag].discard(key)
            if not self._tags[tag]:
                del self._tags[tag]

    def __len__(self) -> int:
        return len(self._values)


class RedisReportCache:
    """
    Redis-backed report cache.

    Each tag is a Redis set of member keys (``{prefix}tag:{name}``).
    Connection failures degrade to cache misses so that generation falls
    back to the store instead of failing.
    """

    def __init__(self, client: redis.Redis, prefix: str = "report_engine:"):
        self._redis = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "report_engine:") -> "RedisReportCache":
        client = redis.from_url(
            url,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._prefix}tag:{tag}"

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self._redis.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis get failed for {key}: {e}")
            return None

    def set(self, key: str, value: bytes, tags: Iterable[str] = ()) -> None:
        try:
            self._redis.set(self._key(key), value)
            for tag in tags:
                self._redis.sadd(self._tag_key(tag), key)
        except redis.RedisError as e:
            logger.warning(f"Redis set failed for {key}: {e}")
            # A half-written entry could outlive its tags
            self.delete(key)

    def invalidate_by_tag(self, tag: str) -> None:
        tag_key = self._tag_key(tag)
        try:
            members = self._redis.smembers(tag_key)
            keys = [self._key(m.decode() if isinstance(m, bytes) else m) for m in members]
            if keys:
                self._redis.delete(*keys)
            self._redis.delete(tag_key)
        except redis.RedisError as e:
            logger.error(f"Redis tag invalidation failed for {tag}: {e}")

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis delete failed for {key}: {e}")
