"""Redis copy of the observer's violation states, for the read-only API.

The worker publishes after every successful pass; the API process reads. The
published copy is never read back by the observer.
"""

import json
import time
from typing import Any
from urllib.parse import urlparse

import redis

from quota_observer.quota_common import TableName, ViolationState
from quota_observer.utils import get_logger

logger = get_logger(__name__)

_CACHE_KEY_STATES = "quota_observer:violation_states"

# A few periods' worth; a stale copy expires if the worker stops publishing
_DEFAULT_TTL_SECONDS = 3600


def get_redis_client(url: str | None) -> redis.Redis | None:
    """Client for a redis:// URL, or None if not a redis URL or unreachable."""
    if not url or not url.startswith("redis://"):
        logger.debug("State cache: no redis:// URL configured")
        return None
    # Format: redis://[password@]host[:port][/db]
    parsed = urlparse(url)
    try:
        client = redis.Redis(
            host=parsed.hostname or "localhost",
            port=parsed.port or 6379,
            db=int(parsed.path.lstrip("/")) if parsed.path.lstrip("/") else 0,
            password=parsed.password,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
        return client
    except (redis.RedisError, ValueError) as e:
        logger.debug("State cache unavailable: %s", e)
        return None


def publish_violation_states(
    client: redis.Redis | None,
    table_states: dict[TableName, ViolationState],
    namespace_states: dict[str, ViolationState],
    ttl_seconds: int = _DEFAULT_TTL_SECONDS,
) -> bool:
    """Write a copy of the states. Failures are logged, never raised."""
    if client is None:
        return False
    data = {
        "published_at": time.time(),
        "tables": {str(t): s.value for t, s in table_states.items()},
        "namespaces": {ns: s.value for ns, s in namespace_states.items()},
    }
    try:
        client.setex(_CACHE_KEY_STATES, ttl_seconds, json.dumps(data))
    except redis.RedisError as e:
        logger.warning("Publishing violation states failed: %s", e)
        return False
    logger.debug("Published %d table and %d namespace states", len(data["tables"]), len(data["namespaces"]))
    return True


def get_published_violation_states(client: redis.Redis | None) -> dict[str, Any] | None:
    """Last published copy, or None if nothing is published (or Redis is unavailable)."""
    if client is None:
        return None
    try:
        cached = client.get(_CACHE_KEY_STATES)
    except redis.RedisError as e:
        logger.warning("Reading violation states failed: %s", e)
        return None
    if not cached:
        return None
    return json.loads(cached.decode("utf-8") if isinstance(cached, bytes) else cached)
