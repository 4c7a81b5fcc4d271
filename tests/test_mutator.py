import pytest

from app.core.errors import ApiError
from app.models.listing import ListingMeta
from app.services.content_store import ContentStore, StoreWriteError
from app.services.mutator import ListingMutator
from app.services.registry import refresh_registry
from app.services.taxonomy import TaxonomyKind
from app.services.validator import CleanPayload


class FlakyTagStore(ContentStore):
    async def replace_terms(self, listing_id, taxonomy, term_ids):
        if taxonomy == TaxonomyKind.TAG.taxonomy:
            raise StoreWriteError("tags offline")
        await super().replace_terms(listing_id, taxonomy, term_ids)


@pytest.mark.asyncio
async def test_failed_write_keeps_earlier_writes(db_session, seed_fields, seed_terms):
    registry = await refresh_registry(db_session)
    phone = registry.find("phone")
    clean = CleanPayload(
        title="Half Written",
        meta=((phone, "555-0100"),),
        category_ids=(seed_terms["Restaurants"],),
        tag_ids=(seed_terms["wifi"],),
    )

    result = await ListingMutator(FlakyTagStore(db_session)).create(clean)
    assert isinstance(result, ApiError)
    assert result.code == "tag_update_failed"
    assert result.status == 500

    store = ContentStore(db_session)
    listing = await store.find_listing_by_title("Half Written")
    assert listing is not None
    assert await store.get_meta(listing.id, phone.meta_key) == "555-0100"
    assert await store.get_term_ids(listing.id, TaxonomyKind.CATEGORY.taxonomy) == [seed_terms["Restaurants"]]
    assert await store.get_term_ids(listing.id, TaxonomyKind.TAG.taxonomy) == []


class BrokenInsertStore(ContentStore):
    async def insert_listing(self, *, title, status):
        raise StoreWriteError("insert listing")


@pytest.mark.asyncio
async def test_insert_failure(db_session):
    result = await ListingMutator(BrokenInsertStore(db_session)).create(CleanPayload(title="Nope"))
    assert result.code == "insert_failed"
    assert result.status == 500


@pytest.mark.asyncio
async def test_update_writes_meta_only_on_change(db_session, seed_listing):
    registry = await refresh_registry(db_session)
    phone, email = registry.find("phone"), registry.find("email")
    clean = CleanPayload(meta=((phone, "555-0100"), (email, "a@shop.test")))

    result = await ListingMutator(ContentStore(db_session)).update(seed_listing.id, clean)
    assert [(c.field, c.value) for c in result.changes] == [("email", "a@shop.test")]

    again = await ListingMutator(ContentStore(db_session)).update(seed_listing.id, clean)
    assert again.changes == ()
    assert again.entity_id == seed_listing.id


class DuplicateMetaStore(ContentStore):
    """Writes the same meta key twice so the real commit hits the unique constraint."""

    async def update_meta(self, listing_id, meta_key, value):
        self.db.add(ListingMeta(listing_id=listing_id, meta_key=meta_key, meta_value=value))
        self.db.add(ListingMeta(listing_id=listing_id, meta_key=meta_key, meta_value=value))
        await self._commit(f"meta {meta_key} on listing {listing_id}")


@pytest.mark.asyncio
async def test_update_commit_failure_returns_structured_error(db_session, seed_listing):
    listing_id = seed_listing.id
    registry = await refresh_registry(db_session)
    email = registry.find("email")

    result = await ListingMutator(DuplicateMetaStore(db_session)).update(
        listing_id, CleanPayload(meta=((email, "a@shop.test"),))
    )
    assert isinstance(result, ApiError)
    assert result.code == "update_failed"
    assert result.status == 500
    assert result.extra == {"post_id": listing_id, "field": "email"}

    assert await ContentStore(db_session).get_meta(listing_id, email.meta_key) is None


@pytest.mark.asyncio
async def test_create_commit_failure_keeps_listing_and_reports_it(db_session, seed_fields):
    registry = await refresh_registry(db_session)
    phone = registry.find("phone")

    result = await ListingMutator(DuplicateMetaStore(db_session)).create(
        CleanPayload(title="Broken Meta", meta=((phone, "555-0100"),))
    )
    assert isinstance(result, ApiError)
    assert result.code == "update_failed"

    listing = await ContentStore(db_session).find_listing_by_title("Broken Meta")
    assert listing is not None
    assert result.extra["post_id"] == listing.id


@pytest.mark.asyncio
async def test_replace_terms_ignores_repeated_ids(db_session, seed_listing, seed_terms):
    listing_id = seed_listing.id
    store = ContentStore(db_session)
    california = seed_terms["California"]

    await store.replace_terms(listing_id, TaxonomyKind.REGION.taxonomy, [california, california])
    assert await store.get_term_ids(listing_id, TaxonomyKind.REGION.taxonomy) == [california]
