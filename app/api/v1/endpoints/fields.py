from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import ApiError, fail
from app.schemas.fields import FieldEventIn, FieldEventOut, FieldOut
from app.services.arg_shapes import ROUTES, build_arg_shapes
from app.services.field_events import handle_field_event
from app.services.internal_admin import require_internal_admin
from app.services.registry import FieldRegistry, RegistryCache, get_registry, get_registry_cache

router = APIRouter()


@router.get("/fields", response_model=list[FieldOut])
async def list_fields(registry: FieldRegistry = Depends(get_registry)) -> list[FieldOut]:
    if registry.is_empty:
        raise fail("no_fields", "No directory fields found.", 404).to_http()
    return [FieldOut(**f.as_dict()) for f in registry]


@router.get("/listing-args/{route}")
async def listing_args(route: str, registry: FieldRegistry = Depends(get_registry)) -> dict:
    if route not in ROUTES:
        raise HTTPException(status_code=404, detail={"code": "rest_no_route", "message": f"Unknown route: {route}"})
    return {shape.name: shape.as_dict() for shape in build_arg_shapes(registry, route)}


@router.post(
    "/internal/field-events",
    response_model=FieldEventOut,
    dependencies=[Depends(require_internal_admin)],
)
async def field_event(
    payload: FieldEventIn,
    cache: RegistryCache = Depends(get_registry_cache),
    db: AsyncSession = Depends(get_db),
) -> FieldEventOut:
    registry = await handle_field_event(db, event=payload.event, field_id=payload.field_id, cache=cache)
    if isinstance(registry, ApiError):
        raise registry.to_http()
    return FieldEventOut(event=payload.event, fields=len(registry))
