import pytest_asyncio

from app.core.security import generate_api_key
from app.models.api_key import ApiKey
from app.models.form_field import FormField
from app.models.listing import Listing, ListingMeta
from app.models.media import Media
from app.models.term import Term, TermMeta
from app.services.registry import field_meta_key
from app.services.taxonomy import ENABLED_META_KEY, TaxonomyKind


async def add_term(db, kind: TaxonomyKind, name: str, enabled: str | None = None) -> int:
    term = Term(taxonomy=kind.taxonomy, name=name, slug=name.lower().replace(" ", "-"))
    db.add(term)
    await db.flush()
    if enabled is not None:
        db.add(TermMeta(term_id=term.id, meta_key=ENABLED_META_KEY, meta_value=enabled))
    return term.id


@pytest_asyncio.fixture
async def seed_fields(db_session):
    rows = [
        FormField(shortname="phone", label="Phone", association="meta", field_type="textfield", validators=""),
        FormField(shortname="website", label="Website", association="meta", field_type="url", validators="url"),
        FormField(shortname="email", label="Email", association="meta", field_type="textfield", validators="email"),
        FormField(shortname="region", label="Location", association="region", field_type="select", validators=""),
        # handled natively, never part of the registry
        FormField(shortname="business_name", label="Business Name", association="title", field_type="textfield", validators="required"),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return {r.shortname: r for r in rows}


@pytest_asyncio.fixture
async def seed_terms(db_session):
    ids = {}
    for name in ("United States", "California", "Los Angeles", "Canada", "Ontario", "Toronto"):
        ids[name] = await add_term(db_session, TaxonomyKind.REGION, name, enabled="true" if name == "Canada" else None)
    for name in ("Restaurants", "Coffee Shops"):
        ids[name] = await add_term(db_session, TaxonomyKind.CATEGORY, name)
    ids["Closed Category"] = await add_term(db_session, TaxonomyKind.CATEGORY, "Closed Category", enabled="false")
    for name in ("wifi", "outdoor seating"):
        ids[name] = await add_term(db_session, TaxonomyKind.TAG, name)
    ids["retired"] = await add_term(db_session, TaxonomyKind.TAG, "retired", enabled="FALSE")
    await db_session.commit()
    return ids


@pytest_asyncio.fixture
async def seed_media(db_session):
    media = Media(url="https://cdn.test/shop.jpg", mime_type="image/jpeg", created_by="test", updated_by="test")
    db_session.add(media)
    await db_session.commit()
    return media.id


@pytest_asyncio.fixture
async def seed_api_key(db_session):
    key = generate_api_key()
    row = ApiKey(label="test-importer", key_prefix=key.prefix, key_hash=key.hashed, is_active=True)
    db_session.add(row)
    await db_session.commit()
    return {"plain_key": key.plain, "api_key_id": row.id, "headers": {"X-API-Key": key.plain}}


@pytest_asyncio.fixture
async def seed_listing(db_session, seed_fields):
    listing = Listing(title="Test Shop", status="publish", created_by="test", updated_by="test")
    db_session.add(listing)
    await db_session.flush()
    db_session.add(
        ListingMeta(listing_id=listing.id, meta_key=field_meta_key(seed_fields["phone"].id), meta_value="555-0100")
    )
    await db_session.commit()
    return listing
