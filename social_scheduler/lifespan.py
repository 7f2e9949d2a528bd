# social_scheduler/lifespan.py
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from social_scheduler.core.config import get_settings
from social_scheduler.services.scheduler import run_auto_publish
from social_scheduler.utils.database import get_supabase_client

logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()


def check_database() -> bool:
    try:
        get_supabase_client(admin_access=True)
        return True
    except Exception as e:
        logger.warning(f"Database client unavailable: {str(e)}")
        return False


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    settings = get_settings()
    try:
        if check_database():
            logger.info("Supabase client initialized")

        if settings.AUTO_PUBLISH_ENABLED:
            scheduler.add_job(
                run_auto_publish,
                'interval',
                seconds=settings.AUTO_PUBLISH_INTERVAL_SECONDS,
                id='auto_publish_due_posts',
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )
            scheduler.start()
            logger.info(f"Started auto-publish sweep every {settings.AUTO_PUBLISH_INTERVAL_SECONDS}s")

        yield
    finally:
        if scheduler.running:
            scheduler.shutdown()
            logger.info("Shutdown scheduler")
        logger.info("Application shutdown complete")
