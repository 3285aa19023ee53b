from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.delivery import ACTIVE_DELIVERY_STATUSES, Delivery
from app.models.listing import Listing
from app.models.request import Request
from app.models.user import User


async def _scalar(db: AsyncSession, stmt) -> int:
    return int((await db.execute(stmt)).scalar_one() or 0)


async def summary(db: AsyncSession) -> dict[str, int]:
    return {
        "total_users": await _scalar(db, select(func.count()).select_from(User)),
        "total_listings": await _scalar(db, select(func.count()).select_from(Listing)),
        "meals_delivered": await _scalar(
            db,
            select(func.coalesce(func.sum(Request.requested_servings), 0)).where(Request.status == "completed"),
        ),
        "meals_available": await _scalar(db, select(func.coalesce(func.sum(Listing.servings_left), 0))),
        "active_deliveries": await _scalar(
            db,
            select(func.count()).select_from(Delivery).where(Delivery.status.in_(ACTIVE_DELIVERY_STATUSES)),
        ),
        "completed_requests": await _scalar(
            db,
            select(func.count()).select_from(Request).where(Request.status == "completed"),
        ),
    }
