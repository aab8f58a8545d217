import logging
from pymongo.database import Database
from redis.asyncio import Redis
from services import course_service

logger = logging.getLogger(__name__)

async def warm_critical_caches(db: Database, r: Redis) -> None:
    """Warm the public catalog: first page, featured and popular lists."""
    try:
        await course_service.warm_courses_cache(db, r)
    except Exception as e:
        logger.error(f"Cache warming failed: {str(e)}")
