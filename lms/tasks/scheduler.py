# tasks/scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pymongo.database import Database
from redis.asyncio import Redis
import logging

from services.cache_warming import warm_critical_caches
from services.memory_cache import memory_cache

logger = logging.getLogger(__name__)

CATALOG_WARM_MINUTES = 30
L1_PURGE_MINUTES = 5


def create_scheduler() -> AsyncIOScheduler:
    # one run at a time per job; a late run is merged into the next one
    return AsyncIOScheduler(job_defaults={"coalesce": True, "max_instances": 1})


async def purge_memory_cache() -> None:
    purged = memory_cache.purge_expired()
    if purged:
        logger.debug(f"Purged {purged} expired L1 cache entries")


def schedule_jobs(scheduler: AsyncIOScheduler, db: Database, r: Redis) -> None:
    scheduler.add_job(
        warm_critical_caches,
        trigger=IntervalTrigger(minutes=CATALOG_WARM_MINUTES),
        args=[db, r],
        id="warm_catalog",
        replace_existing=True,
    )
    scheduler.add_job(
        purge_memory_cache,
        trigger=IntervalTrigger(minutes=L1_PURGE_MINUTES),
        id="purge_l1_cache",
        replace_existing=True,
    )
    logger.info(f"Scheduled catalog warming every {CATALOG_WARM_MINUTES} min, L1 purge every {L1_PURGE_MINUTES} min")
