from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ApiError, fail
from app.services.registry import FieldRegistry, RegistryCache, refresh_registry

log = logging.getLogger(__name__)

FIELD_SAVED = "field_saved"
FIELD_DELETED = "field_deleted"
FIELD_EVENTS = (FIELD_SAVED, FIELD_DELETED)


async def handle_field_event(
    db: AsyncSession,
    *,
    event: str,
    field_id: int | None = None,
    cache: RegistryCache | None = None,
) -> FieldRegistry | ApiError:
    """
    React to a schema change made by the form builder.
    Both events rebuild the whole registry; there is no incremental update.
    """
    if event not in FIELD_EVENTS:
        return fail("invalid_field_event", f"Unsupported field event: {event}", 400, event=event)

    log.info("field event %s (field_id=%s): refreshing registry", event, field_id)
    if cache is not None:
        return await cache.refresh(db)
    return await refresh_registry(db)
