import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from worker.celery_app import celery
from app.core.config import settings
import app.models  # noqa: F401  # ensures Models are registered
from app.core.errors import ApiError
from app.services.field_events import handle_field_event as apply_field_event


log = logging.getLogger(__name__)


async def _handle_field_event(event: str, field_id: int | None) -> int:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with Session() as db:
            registry = await apply_field_event(db, event=event, field_id=field_id)
    finally:
        await engine.dispose()

    if isinstance(registry, ApiError):
        # unknown event names are dropped, retrying cannot fix them
        log.warning("field event ignored: %s", registry.message)
        return -1
    return len(registry)


@celery.task(name="worker.tasks.handle_field_event", bind=True, max_retries=5)
def handle_field_event(self, event: str, field_id: int | None = None) -> int:
    """Consumer for the form builder's field_saved / field_deleted events."""
    try:
        return asyncio.run(_handle_field_event(event, field_id))
    except Exception as e:
        log.exception("field event %s failed", event)
        raise self.retry(exc=e, countdown=5)
