from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import LifecycleError
from app.schemas.request import RequestCreate, RequestOut, RequestStatusUpdate
from app.services.auth import Actor, require_beneficiary, require_roles
from app.services.idempotency import optional_idempotency_key, remember_response, replay_or_reserve
from app.services.requests import create_request, list_requests_for_actor, update_request_status

router = APIRouter()


@router.get("/requests", response_model=list[RequestOut])
async def list_requests(
    actor: Actor = Depends(require_roles("beneficiary", "provider", "delivery", "admin")),
    db: AsyncSession = Depends(get_db),
) -> list[RequestOut]:
    rows = await list_requests_for_actor(db, actor)
    return [RequestOut.model_validate(r) for r in rows]


@router.post("/requests", response_model=RequestOut, status_code=201)
async def post_request(
    payload: RequestCreate,
    request: Request,
    actor: Actor = Depends(require_beneficiary),
    idempotency_key: str | None = Depends(optional_idempotency_key),
    db: AsyncSession = Depends(get_db),
) -> RequestOut:
    if idempotency_key:
        stored = await replay_or_reserve(
            db=db,
            actor=actor,
            key=idempotency_key,
            path=request.url.path,
            payload=payload,
        )
        if stored:
            # the first call already reserved the servings
            return RequestOut(**stored)

    try:
        row = await create_request(
            db=db,
            actor=actor,
            listing_id=payload.listing_id,
            requested_servings=payload.requested_servings,
            notes=payload.notes,
        )
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = RequestOut.model_validate(row)
    if idempotency_key:
        await remember_response(db=db, actor=actor, key=idempotency_key, response=resp.model_dump(mode="json"))

    await db.commit()
    return resp


@router.patch("/requests/{request_id}/status", response_model=RequestOut)
async def patch_request_status(
    request_id: str,
    payload: RequestStatusUpdate,
    actor: Actor = Depends(require_roles("beneficiary", "provider", "delivery", "admin")),
    db: AsyncSession = Depends(get_db),
) -> RequestOut:
    try:
        row = await update_request_status(db=db, actor=actor, request_id=request_id, new_status=payload.status)
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = RequestOut.model_validate(row)
    await db.commit()
    return resp
