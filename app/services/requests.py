from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import Conflict, Forbidden, InvalidState, NotFound
from app.models.delivery import ACTIVE_DELIVERY_STATUSES, Delivery
from app.models.listing import Listing
from app.models.request import REQUEST_STATUSES, Request
from app.services import ledger
from app.services.audit import audit
from app.services.auth import Actor
from app.services.transitions import check_request_transition

log = logging.getLogger(__name__)


async def create_request(
    *,
    db: AsyncSession,
    actor: Actor,
    listing_id: str,
    requested_servings: int,
    notes: str | None = None,
) -> Request:
    """
    Claim servings on an available listing.
    The initial status is deployment-selectable (settings.request_initial_status).
    """
    if actor.role != "beneficiary":
        raise Forbidden("Only beneficiaries can request servings")

    request = await ledger.reserve(
        db,
        listing_id=listing_id,
        beneficiary_id=actor.user_id,
        amount=requested_servings,
        notes=notes,
        initial_status=settings.request_initial_status,
    )
    await audit(
        db,
        actor_user_id=actor.user_id,
        action="request.created",
        target_type="request",
        target_id=request.id,
        detail={"listing_id": listing_id, "requested_servings": requested_servings, "status": request.status},
    )
    await db.flush()
    await db.refresh(request)
    return request


async def get_request(db: AsyncSession, request_id: str) -> Request | None:
    stmt = select(Request).where(Request.id == request_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def _assert_can_act(db: AsyncSession, actor: Actor, request: Request) -> None:
    if actor.role == "admin":
        return

    if actor.role == "beneficiary":
        if request.beneficiary_id != actor.user_id:
            raise Forbidden("Cannot modify another beneficiary request")
        return

    if actor.role == "provider":
        provider_id = (
            await db.execute(select(Listing.provider_id).where(Listing.id == request.listing_id))
        ).scalar_one()
        if provider_id != actor.user_id:
            raise Forbidden("Cannot modify another provider request")
        return

    if actor.role == "delivery":
        agent_id = (
            await db.execute(select(Delivery.delivery_agent_id).where(Delivery.request_id == request.id))
        ).scalar_one_or_none()
        if agent_id != actor.user_id:
            raise Forbidden("Request is not assigned to this delivery agent")
        return

    raise Forbidden("Forbidden")


async def update_request_status(
    *,
    db: AsyncSession,
    actor: Actor,
    request_id: str,
    new_status: str,
) -> Request:
    if new_status not in REQUEST_STATUSES:
        raise InvalidState(f"Unknown request status: {new_status}")

    request = await get_request(db, request_id)
    if not request:
        raise NotFound("Request not found")

    await _assert_can_act(db, actor, request)
    check_request_transition(current=request.status, target=new_status, role=actor.role)

    if request.status == new_status:
        # includes cancelling twice: the ledger is not touched again
        return request

    await apply_request_transition(
        db,
        request=request,
        new_status=new_status,
        actor_user_id=actor.user_id,
    )
    await db.refresh(request)
    return request


async def apply_request_transition(
    db: AsyncSession,
    *,
    request: Request,
    new_status: str,
    actor_user_id: str,
    cascade_delivery: bool = True,
) -> None:
    """
    Move a request to new_status with its side effects, inside the caller's transaction.
    cancelled releases requested_servings once; completed may close out the listing.
    Authority must already be checked.
    """
    previous = request.status

    # compare-and-set: a concurrent transition on the same request loses here
    result = await db.execute(
        update(Request)
        .where(Request.id == request.id, Request.status == previous)
        .values(status=new_status, updated_by=actor_user_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise Conflict("Request was modified concurrently")

    if new_status == "cancelled":
        await ledger.release(db, listing_id=request.listing_id, amount=request.requested_servings)
        if cascade_delivery:
            await db.execute(
                update(Delivery)
                .where(
                    Delivery.request_id == request.id,
                    Delivery.status.in_(ACTIVE_DELIVERY_STATUSES),
                )
                .values(status="cancelled", updated_by=actor_user_id)
                .execution_options(synchronize_session=False)
            )

    if new_status == "completed":
        await ledger.complete_listing_if_depleted(db, listing_id=request.listing_id)

    await audit(
        db,
        actor_user_id=actor_user_id,
        action="request.status_changed",
        target_type="request",
        target_id=request.id,
        detail={"from": previous, "to": new_status},
    )
    await db.flush()
    log.info("request %s: %s -> %s", request.id, previous, new_status)


async def list_requests_for_actor(db: AsyncSession, actor: Actor) -> list[Request]:
    stmt = select(Request)
    if actor.role == "beneficiary":
        stmt = stmt.where(Request.beneficiary_id == actor.user_id)
    elif actor.role == "provider":
        stmt = stmt.join(Listing, Listing.id == Request.listing_id).where(Listing.provider_id == actor.user_id)
    elif actor.role == "delivery":
        stmt = stmt.join(Delivery, Delivery.request_id == Request.id).where(
            Delivery.delivery_agent_id == actor.user_id
        )
    stmt = stmt.order_by(Request.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())
