"""Fast-path claim on inbound external ids so concurrent redeliveries skip early.

The (conversation_id, external_id) unique constraint on messages stays the
source of truth; Redis only short-circuits work when it is configured.
"""

import redis.asyncio as redis_async

from inbox_api.config import settings
from inbox_api.logging_config import get_logger

logger = get_logger("dedup_service")

_redis_client = None
_redis_url = None


def _dedup_key(platform: str, external_id: str) -> str:
    return f"inbox:dedup:{platform.lower()}:{external_id}"


def get_dedup_redis():
    global _redis_client, _redis_url

    redis_url = settings.redis_url
    if not redis_url:
        return None

    if _redis_client is None or _redis_url != redis_url:
        _redis_url = redis_url
        _redis_client = redis_async.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.dedup_socket_timeout_seconds,
            socket_timeout=settings.dedup_socket_timeout_seconds,
        )
    return _redis_client


async def claim_message_id(platform: str, external_id: str, redis_client=None) -> bool:
    """Return False when another delivery already claimed this message id."""
    if not external_id:
        return True

    redis_client = redis_client or get_dedup_redis()
    if not redis_client:
        return True

    try:
        was_set = await redis_client.set(
            _dedup_key(platform, external_id), "1", ex=settings.dedup_ttl_seconds, nx=True
        )
    except Exception as e:
        logger.warning(f"Dedup redis unavailable, relying on DB constraint: {e}")
        return True

    if not was_set:
        logger.info(
            "Duplicate message id (redis)",
            extra={"context": {"platform": platform, "external_id": external_id}},
        )
        return False
    return True


async def release_message_id(platform: str, external_id: str, redis_client=None) -> None:
    """Drop a claim after a failed ingest so the platform's redelivery is processed."""
    redis_client = redis_client or get_dedup_redis()
    if not redis_client or not external_id:
        return
    try:
        await redis_client.delete(_dedup_key(platform, external_id))
    except Exception as e:
        logger.warning(f"Dedup release failed: {e}")
