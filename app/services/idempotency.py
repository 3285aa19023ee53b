from __future__ import annotations

import hashlib
import json
import logging

from fastapi import Header, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.idempotency import IdempotencyKey
from app.services.auth import Actor

log = logging.getLogger(__name__)

MAX_KEY_LENGTH = 200


def request_fingerprint(path: str, payload: BaseModel) -> str:
    body = payload.model_dump(mode="json")
    raw = json.dumps({"path": path, "body": body}, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


async def optional_idempotency_key(idempotency_key: str | None = Header(default=None)) -> str | None:
    if idempotency_key is None:
        return None
    idempotency_key = idempotency_key.strip()
    if not idempotency_key or len(idempotency_key) > MAX_KEY_LENGTH:
        raise HTTPException(status_code=400, detail="Invalid Idempotency-Key")
    return idempotency_key


async def _find(db: AsyncSession, actor: Actor, key: str) -> IdempotencyKey | None:
    stmt = select(IdempotencyKey).where(IdempotencyKey.user_id == actor.user_id, IdempotencyKey.key == key)
    return (await db.execute(stmt)).scalar_one_or_none()


async def replay_or_reserve(
    *,
    db: AsyncSession,
    actor: Actor,
    key: str,
    path: str,
    payload: BaseModel,
) -> dict | None:
    """
    Stored response for a key this user already used on the same request,
    None after reserving the key for a first attempt.
    Reusing a key with a different path or body is a 409.
    """
    fingerprint = request_fingerprint(path, payload)

    existing = await _find(db, actor, key)
    if existing is not None:
        if existing.request_hash != fingerprint:
            raise HTTPException(status_code=409, detail="Idempotency-Key reuse with different request")
        return existing.response or None

    try:
        db.add(IdempotencyKey(user_id=actor.user_id, key=key, request_path=path, request_hash=fingerprint, response={}))
        # unique (user_id, key) is checked here, inside the caller's transaction
        await db.flush()
    except IntegrityError:
        # another request with this key reserved it first and has not finished
        await db.rollback()
        log.info("idempotency: key %s for %s already reserved", key, actor.user_id)
        raise HTTPException(status_code=409, detail="Idempotency-Key in use")
    return None


async def remember_response(*, db: AsyncSession, actor: Actor, key: str, response: dict) -> None:
    row = await _find(db, actor, key)
    if row is None:
        raise RuntimeError(f"Idempotency-Key {key!r} was not reserved")
    row.response = response
    await db.flush()
