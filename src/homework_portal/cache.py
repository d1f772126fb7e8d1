"""Read-through cache for assignment lists and details, backed by Redis.

List keys are ``assignments:{parent|child}:{user_id}:list:{status}:{type}:{child_id}``
and detail keys ``assignments:detail:{assignment_id}``. Cache errors are
logged and never reach the caller.
"""
import json
from typing import Any, Optional

import redis
from loguru import logger

from homework_portal.config import Settings, get_settings

ASSIGNMENTS_CACHE_TTL = 60


def list_cache_key(
    user_id: str,
    user_type: str,
    status: Optional[str] = None,
    kind: Optional[str] = None,
    child_id: Optional[str] = None,
) -> str:
    filters = ":".join([status or "", kind or "", child_id or ""])
    return f"assignments:{user_type}:{user_id}:list:{filters}"


def detail_cache_key(assignment_id: str) -> str:
    return f"assignments:detail:{assignment_id}"


class AssignmentsCache:
    def __init__(self, client: redis.Redis, ttl: int = ASSIGNMENTS_CACHE_TTL):
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str) -> "AssignmentsCache":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> Optional["AssignmentsCache"]:
        settings = settings or get_settings()
        if not settings.redis_url:
            return None
        return cls.from_url(settings.redis_url)

    def get_json(self, key: str) -> Optional[Any]:
        try:
            cached = self.client.get(key)
            return json.loads(cached) if cached else None
        except Exception as exc:
            logger.warning(f"Cache read error for {key}: {exc}")
            return None

    def set_json(self, key: str, value: Any) -> None:
        try:
            self.client.setex(key, self.ttl, json.dumps(value))
        except Exception as exc:
            logger.warning(f"Cache write error: {exc}")

    def invalidate(
        self,
        parent_id: Optional[str] = None,
        child_id: Optional[str] = None,
        assignment_id: Optional[str] = None,
    ) -> None:
        """Drop cached lists for the parent and child and the assignment detail.

        Any subset of arguments may be given; calling it twice is harmless.
        """
        patterns = []
        if parent_id:
            patterns.append(f"assignments:parent:{parent_id}:*")
        if child_id:
            patterns.append(f"assignments:child:{child_id}:*")
        if assignment_id:
            patterns.append(detail_cache_key(assignment_id))

        try:
            for pattern in patterns:
                if "*" in pattern:
                    keys = list(self.client.scan_iter(match=pattern))
                    if keys:
                        self.client.delete(*keys)
                else:
                    self.client.delete(pattern)
        except Exception as exc:
            # best effort; stale entries expire after the TTL
            logger.warning(f"Cache invalidation error: {exc}")
