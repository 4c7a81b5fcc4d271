from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.listing import Listing, ListingMeta, ListingTerm
from app.models.media import Media

log = logging.getLogger(__name__)


class StoreWriteError(RuntimeError):
    pass


class ContentStore:
    """
    Listing storage: entity rows, key/value meta, term associations, featured media.

    Every write commits on its own. A failure after some writes leaves the
    earlier writes in place (there is no cross-write transaction).
    """

    def __init__(self, db: AsyncSession, *, actor_id: str | None = None):
        self.db = db
        self.actor_id = actor_id

    async def _commit(self, what: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.exception("content store write failed: %s", what)
            raise StoreWriteError(what) from e

    # ---- reads ----

    async def get_listing(self, listing_id: int) -> Listing | None:
        return await self.db.get(Listing, listing_id)

    async def find_listing_by_title(self, title: str) -> Listing | None:
        stmt = select(Listing).where(Listing.title == title).order_by(Listing.id.asc()).limit(1)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def image_exists(self, media_id: int) -> bool:
        return (await self.db.get(Media, media_id)) is not None

    async def get_meta(self, listing_id: int, meta_key: str) -> Any:
        stmt = select(ListingMeta.meta_value).where(
            ListingMeta.listing_id == listing_id,
            ListingMeta.meta_key == meta_key,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_term_ids(self, listing_id: int, taxonomy: str) -> list[int]:
        stmt = (
            select(ListingTerm.term_id)
            .where(ListingTerm.listing_id == listing_id, ListingTerm.taxonomy == taxonomy)
            .order_by(ListingTerm.id.asc())
        )
        return list((await self.db.execute(stmt)).scalars().all())

    # ---- writes ----

    async def insert_listing(self, *, title: str, status: str) -> Listing:
        listing = Listing(title=title, status=status, created_by=self.actor_id, updated_by=self.actor_id)
        try:
            self.db.add(listing)
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.exception("content store insert failed: listing %r", title)
            raise StoreWriteError("insert listing") from e
        await self._commit(f"insert listing {title!r}")
        return listing

    async def update_listing(self, listing: Listing, **values: Any) -> None:
        for name, value in values.items():
            setattr(listing, name, value)
        listing.updated_by = self.actor_id
        await self._commit(f"update listing {listing.id}: {sorted(values)}")

    async def update_meta(self, listing_id: int, meta_key: str, value: Any) -> None:
        stmt = select(ListingMeta).where(
            ListingMeta.listing_id == listing_id,
            ListingMeta.meta_key == meta_key,
        )
        try:
            row = (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.exception("content store meta read failed: listing %s %s", listing_id, meta_key)
            raise StoreWriteError(f"meta {meta_key} on listing {listing_id}") from e
        if row is None:
            self.db.add(ListingMeta(listing_id=listing_id, meta_key=meta_key, meta_value=value))
        else:
            row.meta_value = value
        await self._commit(f"meta {meta_key} on listing {listing_id}")

    async def replace_terms(self, listing_id: int, taxonomy: str, term_ids: Iterable[int]) -> None:
        """Replace the whole association set of one taxonomy."""
        try:
            await self.db.execute(
                delete(ListingTerm).where(ListingTerm.listing_id == listing_id, ListingTerm.taxonomy == taxonomy)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.exception("content store term cleanup failed: listing %s %s", listing_id, taxonomy)
            raise StoreWriteError(f"{taxonomy} terms on listing {listing_id}") from e
        self.db.add_all(
            [ListingTerm(listing_id=listing_id, term_id=term_id, taxonomy=taxonomy) for term_id in dict.fromkeys(term_ids)]
        )
        await self._commit(f"{taxonomy} terms on listing {listing_id}")
