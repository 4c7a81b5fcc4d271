import logging
from dataclasses import dataclass

from fastapi import Depends, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import fail
from app.core.security import hash_api_key
from app.models.api_key import ApiKey

log = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass(frozen=True)
class Actor:
    api_key_id: str
    label: str


async def get_actor(
    api_key: str | None = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    if not api_key:
        raise fail("rest_forbidden", "Authentication required.", 401, reason="missing_api_key").to_http()

    hashed = hash_api_key(api_key)
    stmt = select(ApiKey).where(ApiKey.key_hash == hashed, ApiKey.is_active.is_(True))
    row = (await db.execute(stmt)).scalar_one_or_none()
    if not row:
        raise fail("rest_forbidden", "Authentication required.", 401, reason="invalid_api_key").to_http()

    return Actor(api_key_id=row.id, label=row.label)
