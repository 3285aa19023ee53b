"""
Inventory ledger for Listing.servings_left.

Every mutation of servings_left goes through reserve() or release(). Both are
single conditional UPDATE statements so concurrent writers cannot interleave a
read-modify-write; neither commits, the caller owns the transaction.
"""
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidState, NotFound
from app.models.listing import Listing
from app.models.request import Request

log = logging.getLogger(__name__)


async def reserve(
    db: AsyncSession,
    *,
    listing_id: str,
    beneficiary_id: str,
    amount: int,
    notes: str | None = None,
    initial_status: str = "pending",
) -> Request:
    """
    Decrement servings_left by amount and create the Request in the same unit.
    Raises NotFound when the listing is missing or not available,
    InvalidState when fewer than amount servings remain. Nothing is mutated on failure.
    """
    if amount < 1:
        raise InvalidState("Requested servings must be at least 1")

    result = await db.execute(
        update(Listing)
        .where(
            Listing.id == listing_id,
            Listing.status == "available",
            Listing.servings_left >= amount,
        )
        .values(servings_left=Listing.servings_left - amount, updated_by=beneficiary_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        listing = await _get_listing(db, listing_id)
        if listing is None or listing.status != "available":
            raise NotFound("Listing not available")
        raise InvalidState("Not enough servings remaining")

    request = Request(
        listing_id=listing_id,
        beneficiary_id=beneficiary_id,
        requested_servings=amount,
        notes=notes,
        status=initial_status,
        created_by=beneficiary_id,
        updated_by=beneficiary_id,
    )
    db.add(request)
    await db.flush()

    log.info("ledger: reserved %d servings on %s for %s", amount, listing_id, request.id)
    return request


async def release(db: AsyncSession, *, listing_id: str, amount: int) -> None:
    """
    Return amount servings to the listing.
    Callers invoke this at most once per Request (never for an already-cancelled one).
    """
    result = await db.execute(
        update(Listing)
        .where(
            Listing.id == listing_id,
            Listing.servings_left + amount <= Listing.servings_total,
        )
        .values(servings_left=Listing.servings_left + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # release without a matching reserve; storage bounds would be violated
        raise InvalidState("Release exceeds listing servings")

    log.info("ledger: released %d servings on %s", amount, listing_id)


async def complete_listing_if_depleted(db: AsyncSession, *, listing_id: str) -> bool:
    result = await db.execute(
        update(Listing)
        .where(Listing.id == listing_id, Listing.servings_left == 0)
        .values(status="completed")
        .execution_options(synchronize_session=False)
    )
    completed = result.rowcount == 1
    if completed:
        log.info("ledger: listing %s depleted, marked completed", listing_id)
    return completed


async def _get_listing(db: AsyncSession, listing_id: str) -> Listing | None:
    stmt = select(Listing).where(Listing.id == listing_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()
