from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.services.taxonomy import TaxonomyKind, preload_lookup

router = APIRouter()


async def _term_map(db: AsyncSession, kind: TaxonomyKind) -> dict[str, int]:
    lookup = await preload_lookup(db, kind)
    return lookup.as_dict()


@router.get("/regions")
async def list_regions(db: AsyncSession = Depends(get_db)) -> dict[str, int]:
    return await _term_map(db, TaxonomyKind.REGION)


@router.get("/categories")
async def list_categories(db: AsyncSession = Depends(get_db)) -> dict[str, int]:
    return await _term_map(db, TaxonomyKind.CATEGORY)


@router.get("/tags")
async def list_tags(db: AsyncSession = Depends(get_db)) -> dict[str, int]:
    return await _term_map(db, TaxonomyKind.TAG)
