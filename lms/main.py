# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import run_in_threadpool
import logging
import asyncio
import sys
from config import settings
from deps import create_mongo_client, create_redis_client
from logging_config import setup_logging
from middleware.error_handler import ErrorHandlerMiddleware
from repos import accounts, categories, certificates, courses, enrollments, users
from routers.health import router as health_router
from routers.user_auth import auth
from routers.users_route import users as users_routes
from routers.categories_route import categories as categories_routes
from routers.courses_route import courses as courses_routes
from routers.courses_route import modules as modules_routes
from routers.enrollment_route import enrollments as enrollments_routes
from routers.certificates_route import certificates as certificates_routes
from routers.dashboard_route import dashboards
from routers.cache_route import cache
from tasks.scheduler import create_scheduler, schedule_jobs
from services.cache_warming import warm_critical_caches


setup_logging(
    log_level="DEBUG" if settings.DEBUG else "INFO",
    log_file="logs/app.log" if settings.is_production else None,
)
logger = logging.getLogger(__name__)

# repos whose indexes must exist before serving; the unique ones back
# enrollment and certificate idempotence
INDEXED_REPOS = (accounts, users, courses, enrollments, certificates, categories)

ROUTERS = (
    health_router,
    auth.router,
    users_routes.router,
    categories_routes.router,
    courses_routes.router,
    modules_routes.router,
    enrollments_routes.router,
    certificates_routes.router,
    dashboards.router,
    cache.router,
)


app = FastAPI(
    title="LMS API",
    description="Learning management platform: courses, enrollments, progress and certificates",
    version="1.0.0"
)


async def _connect_backends() -> None:
    app.state.mongo_client, app.state.db = create_mongo_client(settings.MONGO_URI)
    logger.info("MongoDB client created")
    app.state.redis = create_redis_client(settings.REDIS_URL)
    await app.state.redis.ping()
    logger.info("Redis connection established")
    for repo in INDEXED_REPOS:
        await run_in_threadpool(repo.ensure_indexes, app.state.db)
    logger.info("Database indexes ensured")


def _log_task_failure(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception():
        logger.error(f"Background task {task.get_name()} failed: {task.exception()}")


@app.on_event("startup")
async def startup():
    logger.info("Starting application...")
    try:
        await _connect_backends()
    except Exception as e:
        logger.critical(f"Startup failed, backing services unavailable: {str(e)}")
        sys.exit(1)

    # the scheduler only keeps caches warm, the API works without it
    try:
        app.state.scheduler = create_scheduler()
        schedule_jobs(app.state.scheduler, app.state.db, app.state.redis)
        app.state.scheduler.start()
        logger.info("Scheduler started")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {str(e)}")

    warm = asyncio.create_task(warm_critical_caches(app.state.db, app.state.redis), name="initial_cache_warm")
    warm.add_done_callback(_log_task_failure)
    logger.info("Application startup completed")


@app.on_event("shutdown")
async def shutdown():
    logger.info("Shutting down...")
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)

    redis = getattr(app.state, "redis", None)
    if redis is not None:
        try:
            await redis.close()
        except ConnectionError as e:
            logger.error(f"Error closing Redis connection: {str(e)}")

    mongo_client = getattr(app.state, "mongo_client", None)
    if mongo_client is not None:
        mongo_client.close()
    logger.info("Application shutdown completed")


# Error handling middleware (should be first)
app.add_middleware(ErrorHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router)
