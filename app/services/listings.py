from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ApiError
from app.services.arg_shapes import build_arg_shapes, coerce_args
from app.services.auth import Actor
from app.services.content_store import ContentStore
from app.services.mutator import ListingMutator, MutationResult
from app.services.normalizer import normalize
from app.services.registry import FieldRegistry
from app.services.taxonomy import preload_lookups
from app.services.validator import CleanPayload, validate


async def prepare_listing_payload(
    *,
    db: AsyncSession,
    registry: FieldRegistry,
    route: str,
    raw: dict[str, Any],
) -> CleanPayload | ApiError:
    """
    args -> normalize -> validate. Stops at the first error.
    Term lookups are rebuilt for this request only.
    """
    args = coerce_args(raw, build_arg_shapes(registry, route))
    if isinstance(args, ApiError):
        return args

    payload = normalize(args, registry)
    if isinstance(payload, ApiError):
        return payload

    lookups = await preload_lookups(db)
    return validate(payload, registry, lookups)


async def create_listing_record(
    *,
    db: AsyncSession,
    actor: Actor,
    registry: FieldRegistry,
    raw: dict[str, Any],
) -> MutationResult | ApiError:
    clean = await prepare_listing_payload(db=db, registry=registry, route="create", raw=raw)
    if isinstance(clean, ApiError):
        return clean
    mutator = ListingMutator(ContentStore(db, actor_id=actor.api_key_id))
    return await mutator.create(clean)


async def update_listing_record(
    *,
    db: AsyncSession,
    actor: Actor,
    registry: FieldRegistry,
    raw: dict[str, Any],
) -> MutationResult | ApiError:
    clean = await prepare_listing_payload(db=db, registry=registry, route="update", raw=raw)
    if isinstance(clean, ApiError):
        return clean
    mutator = ListingMutator(ContentStore(db, actor_id=actor.api_key_id))
    return await mutator.update(clean.entity_id, clean)
