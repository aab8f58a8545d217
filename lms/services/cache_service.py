from typing import Dict, Any
from redis.asyncio import Redis
from bson import ObjectId
from bson.errors import InvalidId
from services.memory_cache import memory_cache
from services import cache_stats, course_service
import logging

logger = logging.getLogger(__name__)

# ---------------------------
# Invalidate course cache
# ---------------------------
async def invalidate_course_cache(r: Redis, course_id: str) -> Dict[str, Any]:
    # only well-formed ids ever reach the cache
    try:
        ObjectId(course_id)
    except (InvalidId, TypeError):
        logger.warning(f"Invalid course_id provided: {course_id}")
        raise ValueError("Invalid course_id")

    await course_service.invalidate_course_cache(r, course_id)
    logger.info(f"Cache cleared for course {course_id}")
    return {"message": f"Cache cleared for course {course_id}"}

# ---------------------------
# Cache Stats
# ---------------------------
async def get_cache_stats(r: Redis) -> Dict[str, Any]:
    stats = await cache_stats.get_stats(r)
    try:
        redis_keys = await r.dbsize()
    except ConnectionError as e:
        logger.error(f"Failed to read Redis key count: {str(e)}")
        redis_keys = None
    return {
        "memory_cache_size": len(memory_cache),
        "redis_keys": redis_keys,
        **stats,
    }

async def reset_cache_stats(r: Redis) -> Dict[str, Any]:
    await cache_stats.reset_stats(r)
    return {"message": "Cache statistics reset"}
