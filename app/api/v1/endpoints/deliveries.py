from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import LifecycleError
from app.schemas.delivery import DeliveryAccept, DeliveryOut, DeliveryStatusUpdate
from app.schemas.request import RequestOut
from app.services.auth import Actor, require_delivery
from app.services.deliveries import (
    accept_delivery,
    list_agent_deliveries,
    list_available_tasks,
    update_delivery_status,
)

router = APIRouter()

@router.get("/deliveries", response_model=list[DeliveryOut])
async def my_deliveries(
    actor: Actor = Depends(require_delivery),
    db: AsyncSession = Depends(get_db),
) -> list[DeliveryOut]:
    rows = await list_agent_deliveries(db, actor)
    return [DeliveryOut.model_validate(r) for r in rows]


@router.get("/deliveries/tasks/available", response_model=list[RequestOut])
async def available_tasks(
    actor: Actor = Depends(require_delivery),
    db: AsyncSession = Depends(get_db),
) -> list[RequestOut]:
    rows = await list_available_tasks(db)
    return [RequestOut.model_validate(r) for r in rows]


@router.post("/deliveries/{request_id}/accept", response_model=DeliveryOut, status_code=201)
async def accept(
    request_id: str,
    payload: DeliveryAccept,
    actor: Actor = Depends(require_delivery),
    db: AsyncSession = Depends(get_db),
) -> DeliveryOut:
    try:
        delivery = await accept_delivery(
            db=db,
            actor=actor,
            request_id=request_id,
            pickup_address=payload.pickup_address,
            dropoff_address=payload.dropoff_address,
        )
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = DeliveryOut.model_validate(delivery)
    await db.commit()
    return resp


@router.patch("/deliveries/{delivery_id}/status", response_model=DeliveryOut)
async def patch_delivery_status(
    delivery_id: str,
    payload: DeliveryStatusUpdate,
    actor: Actor = Depends(require_delivery),
    db: AsyncSession = Depends(get_db),
) -> DeliveryOut:
    try:
        delivery = await update_delivery_status(
            db=db,
            actor=actor,
            delivery_id=delivery_id,
            new_status=payload.status,
            proof_url=payload.proof_url,
        )
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = DeliveryOut.model_validate(delivery)
    await db.commit()
    return resp
