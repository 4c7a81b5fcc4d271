import pytest

from app.models.form_field import FormField
from app.scripts.activate import activate

ADMIN = {"X-Internal-Admin-Key": "test-admin-key"}


@pytest.mark.asyncio
async def test_fields_empty_registry_is_not_found(client):
    r = await client.get("/v1/fields")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "no_fields"


@pytest.mark.asyncio
async def test_fields_lists_meta_and_region_fields(client, seed_fields):
    r = await client.get("/v1/fields")
    assert r.status_code == 200
    assert [f["shortname"] for f in r.json()] == ["phone", "website", "email", "region"]
    assert r.json()[1] == {
        "id": seed_fields["website"].id,
        "shortname": "website",
        "label": "Website",
        "association": "meta",
        "field_type": "url",
        "validators": "url",
    }


@pytest.mark.asyncio
async def test_fields_is_idempotent(client, seed_fields):
    r1 = await client.get("/v1/fields")
    r2 = await client.get("/v1/fields")
    assert r1.content == r2.content


@pytest.mark.asyncio
async def test_field_saved_event_refreshes_registry(client, db_session, seed_fields):
    before = await client.get("/v1/fields")

    db_session.add(FormField(shortname="fax", label="Fax", association="meta", field_type="textfield", validators=""))
    await db_session.commit()

    # cached snapshot is still served until an event arrives
    assert (await client.get("/v1/fields")).content == before.content

    r = await client.post("/v1/internal/field-events", json={"event": "field_saved", "field_id": 99}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"event": "field_saved", "fields": 5}

    after = await client.get("/v1/fields")
    assert "fax" in [f["shortname"] for f in after.json()]

    args = await client.get("/v1/listing-args/create")
    assert args.json()["fax"] == {"type": "string", "required": False, "description": "Fax"}


@pytest.mark.asyncio
async def test_field_events_require_admin_key_and_known_event(client, seed_fields):
    r = await client.post("/v1/internal/field-events", json={"event": "field_saved"})
    assert r.status_code == 403

    r = await client.post("/v1/internal/field-events", json={"event": "field_renamed"}, headers=ADMIN)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "invalid_field_event"


@pytest.mark.asyncio
async def test_listing_args(client, seed_fields):
    r = await client.get("/v1/listing-args/update")
    assert r.status_code == 200
    shapes = r.json()
    assert shapes["id"] == {"type": "integer", "required": True, "description": "Listing id."}
    assert shapes["website"]["type"] == ["array", "string"]
    assert "region" not in shapes

    assert (await client.get("/v1/listing-args/delete")).status_code == 404


@pytest.mark.asyncio
async def test_taxonomy_maps(client, seed_terms):
    regions = (await client.get("/v1/regions")).json()
    assert regions["united states"] == seed_terms["United States"]
    assert regions["california"] == seed_terms["California"]

    categories = (await client.get("/v1/categories")).json()
    assert categories == {"restaurants": seed_terms["Restaurants"], "coffee shops": seed_terms["Coffee Shops"]}

    tags = (await client.get("/v1/tags")).json()
    assert "retired" not in tags
    assert tags["wifi"] == seed_terms["wifi"]


@pytest.mark.asyncio
async def test_activation_builds_registry(db_session, seed_fields):
    registry = await activate(db_session)
    assert len(registry) == 4
