import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from worker.celery_app import celery
from app.core.config import settings
import app.models  # noqa: F401  # registers mappers before the sweep queries
from app.services.listings import expire_listings

log = logging.getLogger(__name__)


async def _expire_listings() -> int:
    # one engine per run: each task gets its own event loop from asyncio.run
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with Session() as db:
            count = await expire_listings(db, now=datetime.now(timezone.utc))
            await db.commit()
    finally:
        await engine.dispose()

    log.info("expire_listings: %d listings expired", count)
    return count


@celery.task(name="worker.tasks.expire_listings", bind=True, max_retries=3)
def expire_listings_task(self) -> int:
    try:
        return asyncio.run(_expire_listings())
    except OperationalError as exc:
        log.warning("expire_listings: database unavailable, retrying (%s)", exc)
        raise self.retry(exc=exc, countdown=30)
