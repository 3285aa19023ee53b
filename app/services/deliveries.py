from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import Conflict, InvalidState, NotFound
from app.models.delivery import DELIVERY_STATUSES, Delivery
from app.models.request import Request
from app.services.audit import audit
from app.services.auth import Actor
from app.services.requests import apply_request_transition, get_request
from app.services.transitions import check_delivery_transition

log = logging.getLogger(__name__)


async def _has_delivery(db: AsyncSession, request_id: str) -> bool:
    stmt = select(exists().where(Delivery.request_id == request_id))
    return bool((await db.execute(stmt)).scalar())


async def accept_delivery(
    *,
    db: AsyncSession,
    actor: Actor,
    request_id: str,
    pickup_address: str,
    dropoff_address: str,
) -> Delivery:
    """
    Claim an approved request for delivery.
    Delivery insert + request approved -> in_progress are one unit; the unique
    constraint on deliveries.request_id decides concurrent claims.
    """
    request = await get_request(db, request_id)
    if not request or request.status != "approved":
        if request and await _has_delivery(db, request_id):
            raise Conflict("Delivery already assigned")
        raise InvalidState("Request is not available for delivery")

    delivery = Delivery(
        request_id=request_id,
        delivery_agent_id=actor.user_id,
        pickup_address=pickup_address,
        dropoff_address=dropoff_address,
        status="assigned",
        created_by=actor.user_id,
        updated_by=actor.user_id,
    )

    try:
        db.add(delivery)
        await db.flush()
    except IntegrityError:
        await db.rollback()
        log.info("accept: request %s already claimed (unique violation)", request_id)
        raise Conflict("Delivery already assigned")

    result = await db.execute(
        update(Request)
        .where(Request.id == request_id, Request.status == "approved")
        .values(status="in_progress", updated_by=actor.user_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        log.info("accept: request %s left approved concurrently", request_id)
        raise Conflict("Delivery already assigned")

    await audit(
        db,
        actor_user_id=actor.user_id,
        action="delivery.accepted",
        target_type="delivery",
        target_id=delivery.id,
        detail={"request_id": request_id},
    )
    await db.flush()
    await db.refresh(delivery)

    log.info("delivery %s: request %s assigned to %s", delivery.id, request_id, actor.user_id)
    return delivery


async def update_delivery_status(
    *,
    db: AsyncSession,
    actor: Actor,
    delivery_id: str,
    new_status: str,
    proof_url: str | None = None,
) -> Delivery:
    if new_status not in DELIVERY_STATUSES:
        raise InvalidState(f"Unknown delivery status: {new_status}")

    stmt = select(Delivery).where(Delivery.id == delivery_id).execution_options(populate_existing=True)
    delivery = (await db.execute(stmt)).scalar_one_or_none()
    # same answer for "missing" and "someone else's" so ids do not leak
    if not delivery or delivery.delivery_agent_id != actor.user_id:
        raise NotFound("Delivery not found")

    check_delivery_transition(current=delivery.status, target=new_status)

    if proof_url is not None:
        delivery.proof_url = proof_url

    previous = delivery.status
    if previous == new_status:
        await db.flush()
        return delivery

    now = datetime.now(timezone.utc)
    delivery.status = new_status
    delivery.updated_by = actor.user_id
    if new_status == "picked_up":
        delivery.picked_up_at = now
    if new_status == "delivered":
        delivery.delivered_at = now
    await db.flush()

    if new_status in ("delivered", "cancelled"):
        request = await get_request(db, delivery.request_id)
        target = "completed" if new_status == "delivered" else "cancelled"
        if request and request.status not in ("completed", "cancelled"):
            await apply_request_transition(
                db,
                request=request,
                new_status=target,
                actor_user_id=actor.user_id,
                cascade_delivery=False,
            )

    await audit(
        db,
        actor_user_id=actor.user_id,
        action="delivery.status_changed",
        target_type="delivery",
        target_id=delivery.id,
        detail={"from": previous, "to": new_status},
    )
    await db.flush()
    await db.refresh(delivery)

    log.info("delivery %s: %s -> %s", delivery.id, previous, new_status)
    return delivery


async def list_available_tasks(db: AsyncSession) -> list[Request]:
    stmt = (
        select(Request)
        .where(
            Request.status == "approved",
            ~exists().where(Delivery.request_id == Request.id),
        )
        .order_by(Request.created_at.asc())
        .limit(settings.available_tasks_limit)
    )
    return list((await db.execute(stmt)).scalars().all())


async def list_agent_deliveries(db: AsyncSession, actor: Actor) -> list[Delivery]:
    stmt = (
        select(Delivery)
        .where(Delivery.delivery_agent_id == actor.user_id)
        .order_by(Delivery.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())
