from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, InvalidState, NotFound
from app.models.listing import LISTING_STATUSES, Listing
from app.services.audit import audit
from app.services.auth import Actor

log = logging.getLogger(__name__)

# no servings_total / servings_left: those move only through the ledger
PATCHABLE_FIELDS = (
    "title", "description", "category", "food_type", "expiry_at", "address", "latitude", "longitude", "status",
)
# explicit null clears these
NULLABLE_FIELDS = ("description", "latitude", "longitude")


async def create_listing(
    *,
    db: AsyncSession,
    actor: Actor,
    title: str,
    category: str,
    food_type: str,
    servings_total: int,
    expiry_at: datetime,
    address: str,
    description: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> Listing:
    if actor.role != "provider":
        raise Forbidden("Only providers can create listings")
    if servings_total < 1:
        raise InvalidState("servings_total must be at least 1")

    listing = Listing(
        provider_id=actor.user_id,
        title=title,
        description=description,
        category=category.lower(),
        food_type=food_type.lower(),
        servings_total=servings_total,
        servings_left=servings_total,
        status="available",
        expiry_at=expiry_at,
        address=address,
        latitude=latitude,
        longitude=longitude,
        created_by=actor.user_id,
        updated_by=actor.user_id,
    )
    db.add(listing)
    await db.flush()

    await audit(
        db,
        actor_user_id=actor.user_id,
        action="listing.created",
        target_type="listing",
        target_id=listing.id,
        detail={"servings_total": servings_total},
    )
    await db.flush()
    await db.refresh(listing)
    return listing


async def get_listing(db: AsyncSession, listing_id: str) -> Listing | None:
    stmt = select(Listing).where(Listing.id == listing_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def update_listing(
    *,
    db: AsyncSession,
    actor: Actor,
    listing_id: str,
    changes: dict[str, Any],
) -> Listing:
    """
    Owner (or admin) patch. A manual status override is accepted as-is, even when
    it disagrees with servings_left (e.g. forcing completed with servings remaining).
    """
    listing = await get_listing(db, listing_id)
    # providers get 404 for listings they do not own
    if not listing or (actor.role != "admin" and listing.provider_id != actor.user_id):
        raise NotFound("Listing not found")

    unknown = set(changes) - set(PATCHABLE_FIELDS)
    if unknown:
        raise InvalidState(f"Fields not patchable: {', '.join(sorted(unknown))}")

    status = changes.get("status")
    if status is not None and status not in LISTING_STATUSES:
        raise InvalidState(f"Unknown listing status: {status}")

    for field, value in changes.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        if field in ("category", "food_type"):
            value = value.lower()
        setattr(listing, field, value)
    listing.updated_by = actor.user_id

    await audit(
        db,
        actor_user_id=actor.user_id,
        action="listing.updated",
        target_type="listing",
        target_id=listing.id,
        detail={"fields": sorted(changes)},
    )
    await db.flush()
    await db.refresh(listing)
    return listing


async def list_listings(
    db: AsyncSession,
    *,
    status: str | None = None,
    category: str | None = None,
    search: str | None = None,
    take: int = 20,
) -> list[Listing]:
    stmt = select(Listing)
    if status:
        stmt = stmt.where(Listing.status == status)
    if category:
        stmt = stmt.where(Listing.category == category.lower())
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Listing.title.ilike(pattern), Listing.description.ilike(pattern)))

    stmt = stmt.order_by(Listing.created_at.desc()).limit(take)
    return list((await db.execute(stmt)).scalars().all())


async def list_provider_listings(db: AsyncSession, actor: Actor) -> list[Listing]:
    stmt = select(Listing).where(Listing.provider_id == actor.user_id).order_by(Listing.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())


async def expire_listings(db: AsyncSession, *, now: datetime) -> int:
    """
    Time-based sweep: available/reserved listings past expiry_at become expired.
    Requests already placed against them are left alone.
    """
    result = await db.execute(
        update(Listing)
        .where(
            Listing.status.in_(("available", "reserved")),
            Listing.expiry_at <= now,
        )
        .values(status="expired", updated_by="internal")
        .execution_options(synchronize_session=False)
    )
    count = int(result.rowcount or 0)
    if count:
        log.info("expired %d listings", count)
    return count
