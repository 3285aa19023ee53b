import pytest
from fastapi import HTTPException
from sqlalchemy import func, select

from app.models.idempotency import IdempotencyKey
from app.schemas.request import RequestCreate
from app.services import idempotency
from app.services.idempotency import replay_or_reserve


def _payload(servings=5):
    return RequestCreate(listing_id="lst_demo", requested_servings=servings)


@pytest.mark.asyncio
async def test_first_use_reserves_the_key(db_session, seed_users):
    actor = seed_users["beneficiary"].actor

    stored = await replay_or_reserve(db=db_session, actor=actor, key="k-1", path="/v1/requests", payload=_payload())
    await db_session.commit()

    assert stored is None
    row = (await db_session.execute(select(IdempotencyKey).where(IdempotencyKey.key == "k-1"))).scalar_one()
    assert row.user_id == actor.user_id
    assert row.request_path == "/v1/requests"
    assert row.response == {}


@pytest.mark.asyncio
async def test_key_reserved_by_a_parallel_request_is_409(db_session, seed_users, monkeypatch):
    actor = seed_users["beneficiary"].actor
    await replay_or_reserve(db=db_session, actor=actor, key="k-2", path="/v1/requests", payload=_payload())
    await db_session.commit()

    # the second request looked the key up before the first one's row became visible
    async def _not_yet_visible(db, actor, key):
        return None

    monkeypatch.setattr(idempotency, "_find", _not_yet_visible)

    with pytest.raises(HTTPException) as exc:
        await replay_or_reserve(db=db_session, actor=actor, key="k-2", path="/v1/requests", payload=_payload())
    assert exc.value.status_code == 409
    assert exc.value.detail == "Idempotency-Key in use"

    count = (await db_session.execute(select(func.count()).select_from(IdempotencyKey))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_same_key_different_body_is_409(db_session, seed_users):
    actor = seed_users["beneficiary"].actor
    await replay_or_reserve(db=db_session, actor=actor, key="k-3", path="/v1/requests", payload=_payload(5))
    await db_session.commit()

    with pytest.raises(HTTPException) as exc:
        await replay_or_reserve(db=db_session, actor=actor, key="k-3", path="/v1/requests", payload=_payload(6))
    assert exc.value.status_code == 409
    assert exc.value.detail == "Idempotency-Key reuse with different request"
