from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.core.config import settings
from app.core.errors import ApiError, fail
from app.models.listing import Listing
from app.services.content_store import ContentStore, StoreWriteError
from app.services.taxonomy import TaxonomyKind
from app.services.validator import CleanPayload

log = logging.getLogger(__name__)

# response field name per taxonomy group
_TERM_GROUPS = (
    (TaxonomyKind.REGION, "region_ids", "regions"),
    (TaxonomyKind.CATEGORY, "category_ids", "categories"),
    (TaxonomyKind.TAG, "tag_ids", "tags"),
)


@dataclass(frozen=True)
class ChangeRecord:
    field: str
    value: Any

    def as_dict(self) -> dict[str, Any]:
        return {"field": self.field, "value": self.value}


@dataclass(frozen=True)
class MutationResult:
    entity_id: int
    title: str
    status: str
    changes: tuple[ChangeRecord, ...]


class ListingMutator:
    """
    Applies a validated payload to the content store.

    Write order: entity, featured image, meta fields, region, categories, tags.
    The first failed write stops the run; earlier writes stay committed.
    """

    def __init__(self, store: ContentStore):
        self.store = store

    async def create(self, clean: CleanPayload) -> MutationResult | ApiError:
        title = clean.title
        if not title:
            return fail("missing_title", "A listing title is required.", 400)

        existing = await self.store.find_listing_by_title(title)
        if existing is not None:
            return fail(
                "duplicate_title",
                f"A listing titled {title!r} already exists.",
                409,
                existing_id=existing.id,
                existing_status=existing.status,
            )

        err = await self._check_image(clean.featured_image)
        if err:
            return err

        status = clean.status or settings.default_listing_status
        try:
            listing = await self.store.insert_listing(title=title, status=status)
        except StoreWriteError:
            return fail("insert_failed", "Could not create the listing.", 500, title=title)

        # a failed commit rolls back and expires the instance
        listing_id = listing.id
        changes = [ChangeRecord("title", title), ChangeRecord("status", status)]
        log.info("listing %s created", listing_id)

        if clean.featured_image is not None:
            try:
                await self.store.update_listing(listing, featured_image_id=clean.featured_image)
            except StoreWriteError:
                return fail("update_failed", "Could not set the featured image.", 500, post_id=listing_id)
            changes.append(ChangeRecord("featured_image", clean.featured_image))

        for definition, value in clean.meta:
            try:
                await self.store.update_meta(listing_id, definition.meta_key, value)
            except StoreWriteError:
                return fail("update_failed", f"Could not write {definition.shortname}.", 500, post_id=listing_id, field=definition.shortname)
            changes.append(ChangeRecord(definition.shortname, value))

        err = await self._write_terms(listing_id, clean, changes)
        if err:
            return err

        return MutationResult(entity_id=listing_id, title=listing.title, status=listing.status, changes=tuple(changes))

    async def update(self, entity_id: int | None, clean: CleanPayload) -> MutationResult | ApiError:
        listing = await self.store.get_listing(entity_id) if entity_id else None
        if listing is None:
            return fail("invalid_post", "Listing not found.", 404, post_id=entity_id)
        listing_id = listing.id

        err = await self._check_image(clean.featured_image)
        if err:
            return err

        changes: list[ChangeRecord] = []

        err = await self._write_system_fields(listing, clean, changes)
        if err:
            return err

        for definition, value in clean.meta:
            current = await self.store.get_meta(listing_id, definition.meta_key)
            if current == value:
                log.info("listing %s: %s unchanged, skipping", listing_id, definition.shortname)
                continue
            try:
                await self.store.update_meta(listing_id, definition.meta_key, value)
            except StoreWriteError:
                return fail("update_failed", f"Could not write {definition.shortname}.", 500, post_id=listing_id, field=definition.shortname)
            changes.append(ChangeRecord(definition.shortname, value))

        err = await self._write_terms(listing_id, clean, changes)
        if err:
            return err

        log.info("listing %s updated: %d changes", listing_id, len(changes))
        return MutationResult(entity_id=listing_id, title=listing.title, status=listing.status, changes=tuple(changes))

    async def _check_image(self, image_id: int | None) -> ApiError | None:
        if image_id is None:
            return None
        if not await self.store.image_exists(image_id):
            return fail("invalid_image", f"Image {image_id} not found.", 404, featured_image=image_id)
        return None

    async def _write_system_fields(self, listing: Listing, clean: CleanPayload, changes: list[ChangeRecord]) -> ApiError | None:
        listing_id = listing.id
        values: dict[str, Any] = {}
        if clean.title and clean.title != listing.title:
            values["title"] = clean.title
        if clean.status and clean.status != listing.status:
            values["status"] = clean.status
        if clean.featured_image is not None and clean.featured_image != listing.featured_image_id:
            values["featured_image_id"] = clean.featured_image
        if not values:
            return None

        try:
            await self.store.update_listing(listing, **values)
        except StoreWriteError:
            return fail("update_failed", "Could not update the listing.", 500, post_id=listing_id)

        for name, value in values.items():
            changes.append(ChangeRecord("featured_image" if name == "featured_image_id" else name, value))
        return None

    async def _write_terms(self, listing_id: int, clean: CleanPayload, changes: list[ChangeRecord]) -> ApiError | None:
        # whole-set rewrite, always reported when supplied
        for kind, attr, label in _TERM_GROUPS:
            ids = getattr(clean, attr)
            if ids is None:
                continue
            try:
                await self.store.replace_terms(listing_id, kind.taxonomy, ids)
            except StoreWriteError:
                code = "tag_update_failed" if kind is TaxonomyKind.TAG else "update_failed"
                return fail(code, f"Could not update {label}.", 500, post_id=listing_id, field=label)
            changes.append(ChangeRecord(label, list(ids)))
        return None
