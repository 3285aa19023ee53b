import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.models.delivery import Delivery
from app.models.listing import Listing
from app.models.request import Request

from tests.fixtures_seed import make_delivery, make_listing, make_request


async def _listing(db, listing_id: str) -> Listing:
    return await db.get(Listing, listing_id, populate_existing=True)


async def _create(client, user, listing_id: str, servings: int, **extra):
    body = {"listing_id": listing_id, "requested_servings": servings, **extra}
    return await client.post("/v1/requests", json=body, headers=user.headers)


@pytest.mark.asyncio
async def test_create_request_reserves_servings(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_total=40, servings_left=30)

    r = await _create(client, seed_users["beneficiary"], listing.id, 30, notes="for the evening shelter")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "pending"
    assert body["requested_servings"] == 30
    assert body["beneficiary_id"] == seed_users["beneficiary"].id

    assert (await _listing(db_session, listing.id)).servings_left == 0


@pytest.mark.asyncio
async def test_create_request_can_start_approved(client, db_session, seed_users, monkeypatch):
    monkeypatch.setattr(settings, "request_initial_status", "approved")
    listing = await make_listing(db_session, seed_users["provider"])

    r = await _create(client, seed_users["beneficiary"], listing.id, 5)
    assert r.status_code == 201, r.text
    assert r.json()["status"] == "approved"


@pytest.mark.asyncio
async def test_create_request_for_more_than_remaining_is_rejected(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_total=40, servings_left=30)

    r = await _create(client, seed_users["beneficiary"], listing.id, 31)
    assert r.status_code == 400
    assert r.json()["detail"] == "Not enough servings remaining"

    assert (await _listing(db_session, listing.id)).servings_left == 30
    assert (await db_session.execute(select(func.count()).select_from(Request))).scalar_one() == 0


@pytest.mark.asyncio
async def test_create_request_on_unavailable_listing_is_not_found(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], status="expired")

    r = await _create(client, seed_users["beneficiary"], listing.id, 1)
    assert r.status_code == 404
    assert r.json()["detail"] == "Listing not available"


@pytest.mark.asyncio
async def test_only_beneficiaries_create_requests(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"])

    r = await _create(client, seed_users["provider"], listing.id, 1)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_create_request_replays_with_idempotency_key(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_total=20)
    beneficiary = seed_users["beneficiary"]
    headers = {**beneficiary.headers, "Idempotency-Key": "claim-curry-1"}
    body = {"listing_id": listing.id, "requested_servings": 4}

    r1 = await client.post("/v1/requests", json=body, headers=headers)
    assert r1.status_code == 201, r1.text
    r2 = await client.post("/v1/requests", json=body, headers=headers)
    assert r2.status_code == 201, r2.text

    assert r2.json()["id"] == r1.json()["id"]
    assert (await _listing(db_session, listing.id)).servings_left == 16

    r3 = await client.post("/v1/requests", json={**body, "requested_servings": 5}, headers=headers)
    assert r3.status_code == 409


@pytest.mark.asyncio
async def test_cancel_returns_servings_exactly_once(client, db_session, seed_users):
    beneficiary = seed_users["beneficiary"]
    listing = await make_listing(db_session, seed_users["provider"], servings_total=40, servings_left=40)

    r = await _create(client, beneficiary, listing.id, 10)
    request_id = r.json()["id"]
    assert (await _listing(db_session, listing.id)).servings_left == 30

    url = f"/v1/requests/{request_id}/status"
    r = await client.patch(url, json={"status": "cancelled"}, headers=beneficiary.headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "cancelled"
    assert (await _listing(db_session, listing.id)).servings_left == 40

    # second cancel is a no-op on the ledger
    r = await client.patch(url, json={"status": "cancelled"}, headers=beneficiary.headers)
    assert r.status_code == 200, r.text
    assert (await _listing(db_session, listing.id)).servings_left == 40


@pytest.mark.asyncio
async def test_beneficiary_cannot_approve_own_request(client, db_session, seed_users):
    beneficiary = seed_users["beneficiary"]
    listing = await make_listing(db_session, seed_users["provider"])
    r = await _create(client, beneficiary, listing.id, 2)
    request_id = r.json()["id"]

    r = await client.patch(f"/v1/requests/{request_id}/status", json={"status": "approved"}, headers=beneficiary.headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Beneficiaries can only cancel requests"


@pytest.mark.asyncio
async def test_beneficiary_cannot_cancel_someone_elses_request(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_left=30)
    request = await make_request(db_session, listing, seed_users["beneficiary"], status="pending")

    r = await client.patch(
        f"/v1/requests/{request.id}/status",
        json={"status": "cancelled"},
        headers=seed_users["other_beneficiary"].headers,
    )
    assert r.status_code == 403
    assert (await _listing(db_session, listing.id)).servings_left == 30


@pytest.mark.asyncio
async def test_provider_approves_requests_on_own_listing_only(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_left=30)
    request = await make_request(db_session, listing, seed_users["beneficiary"], status="pending")
    url = f"/v1/requests/{request.id}/status"

    r = await client.patch(url, json={"status": "approved"}, headers=seed_users["other_provider"].headers)
    assert r.status_code == 403

    r = await client.patch(url, json={"status": "approved"}, headers=seed_users["provider"].headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "approved"


@pytest.mark.asyncio
async def test_terminal_request_cannot_be_reopened(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_left=30)
    request = await make_request(db_session, listing, seed_users["beneficiary"], status="completed")

    r = await client.patch(
        f"/v1/requests/{request.id}/status",
        json={"status": "pending"},
        headers=seed_users["admin"].headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_delivery_agent_cannot_approve_requests(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_left=30)
    request = await make_request(db_session, listing, seed_users["beneficiary"], status="pending")

    r = await client.patch(
        f"/v1/requests/{request.id}/status",
        json={"status": "approved"},
        headers=seed_users["courier"].headers,
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_unknown_request_is_not_found(client, seed_users):
    r = await client.patch(
        "/v1/requests/req_missing/status",
        json={"status": "cancelled"},
        headers=seed_users["admin"].headers,
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_completion_with_servings_left_keeps_listing_status(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_total=40, servings_left=30)
    request = await make_request(db_session, listing, seed_users["beneficiary"], status="in_progress")

    r = await client.patch(
        f"/v1/requests/{request.id}/status",
        json={"status": "completed"},
        headers=seed_users["admin"].headers,
    )
    assert r.status_code == 200, r.text
    assert (await _listing(db_session, listing.id)).status == "available"


@pytest.mark.asyncio
async def test_completion_of_depleted_listing_closes_it(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_total=10, servings_left=0)
    request = await make_request(db_session, listing, seed_users["beneficiary"], status="in_progress")

    r = await client.patch(
        f"/v1/requests/{request.id}/status",
        json={"status": "completed"},
        headers=seed_users["admin"].headers,
    )
    assert r.status_code == 200, r.text
    assert (await _listing(db_session, listing.id)).status == "completed"


@pytest.mark.asyncio
async def test_cancelling_in_progress_request_cancels_its_delivery(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_total=40, servings_left=30)
    request = await make_request(db_session, listing, seed_users["beneficiary"], requested_servings=10, status="in_progress")
    delivery = await make_delivery(db_session, request, seed_users["courier"])

    r = await client.patch(
        f"/v1/requests/{request.id}/status",
        json={"status": "cancelled"},
        headers=seed_users["beneficiary"].headers,
    )
    assert r.status_code == 200, r.text

    assert (await _listing(db_session, listing.id)).servings_left == 40
    refreshed = await db_session.get(Delivery, delivery.id, populate_existing=True)
    assert refreshed.status == "cancelled"


@pytest.mark.asyncio
async def test_list_requests_is_scoped_by_role(client, db_session, seed_users):
    listing = await make_listing(db_session, seed_users["provider"], servings_left=20)
    other_listing = await make_listing(db_session, seed_users["other_provider"], servings_left=20)
    mine = await make_request(db_session, listing, seed_users["beneficiary"], status="pending")
    theirs = await make_request(db_session, other_listing, seed_users["other_beneficiary"], status="pending")

    r = await client.get("/v1/requests", headers=seed_users["beneficiary"].headers)
    assert [row["id"] for row in r.json()] == [mine.id]

    r = await client.get("/v1/requests", headers=seed_users["other_provider"].headers)
    assert [row["id"] for row in r.json()] == [theirs.id]

    r = await client.get("/v1/requests", headers=seed_users["admin"].headers)
    assert {row["id"] for row in r.json()} == {mine.id, theirs.id}
