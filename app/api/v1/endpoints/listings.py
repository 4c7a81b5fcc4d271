import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.core.errors import ApiError
from app.schemas.common import ChangeOut, ErrorResponse
from app.schemas.listing import CreateListingOut, ListingPostOut, UpdateListingOut
from app.services.auth import Actor, get_actor
from app.services.listings import create_listing_record, update_listing_record
from app.services.registry import FieldRegistry, get_registry

log = logging.getLogger(__name__)
router = APIRouter()


_ERRORS = {code: {"model": ErrorResponse} for code in (400, 401, 404, 409, 500)}


@router.post("/create-listing", response_model=CreateListingOut, responses=_ERRORS)
async def create_listing(
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    registry: FieldRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> CreateListingOut:
    result = await create_listing_record(db=db, actor=actor, registry=registry, raw=payload)
    if isinstance(result, ApiError):
        raise result.to_http()

    log.info("create-listing by %s: listing %s, %d changes", actor.api_key_id, result.entity_id, len(result.changes))
    return CreateListingOut(
        post=ListingPostOut(id=result.entity_id, title=result.title, status=result.status),
        edit_url=settings.listing_edit_url_template.format(id=result.entity_id),
        changes=[ChangeOut(**c.as_dict()) for c in result.changes],
    )


@router.patch("/update-listing", response_model=UpdateListingOut, responses=_ERRORS)
async def update_listing(
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    registry: FieldRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> UpdateListingOut:
    result = await update_listing_record(db=db, actor=actor, registry=registry, raw=payload)
    if isinstance(result, ApiError):
        raise result.to_http()

    log.info("update-listing by %s: listing %s, %d changes", actor.api_key_id, result.entity_id, len(result.changes))
    return UpdateListingOut(
        post_id=result.entity_id,
        updates=[ChangeOut(**c.as_dict()) for c in result.changes],
    )
