from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.models.delivery import Delivery
from app.models.listing import Listing
from app.models.request import Request
from app.services.auth import Actor
from app.services.users import provision_user

# Helpers commit and then detach what they return, so a later rollback in the
# shared test session never expires objects a test still holds.


@dataclass(frozen=True)
class SeededUser:
    id: str
    role: str
    email: str
    api_key: str

    @property
    def headers(self) -> dict:
        return {"X-API-Key": self.api_key}

    @property
    def actor(self) -> Actor:
        return Actor(api_key_id="key_test", user_id=self.id, role=self.role)


async def make_user(db, *, role: str, email: str, status: str = "approved") -> SeededUser:
    user, key = await provision_user(db=db, full_name=email.split("@")[0], email=email, role=role, status=status)
    await db.commit()
    return SeededUser(id=user.id, role=user.role, email=user.email, api_key=key.plain)


async def _commit_detached(db, obj):
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    db.expunge(obj)
    return obj


async def make_listing(
    db,
    provider: SeededUser,
    *,
    servings_total: int = 40,
    servings_left: int | None = None,
    status: str = "available",
    expiry_at: datetime | None = None,
    title: str = "Vegetable Curry Trays",
    category: str = "prepared",
) -> Listing:
    listing = Listing(
        provider_id=provider.id,
        title=title,
        description="Mild curry with rice, chilled.",
        category=category,
        food_type="meal",
        servings_total=servings_total,
        servings_left=servings_total if servings_left is None else servings_left,
        status=status,
        expiry_at=expiry_at or datetime.now(timezone.utc) + timedelta(days=1),
        address="42 Market Street",
        created_by="test",
        updated_by="test",
    )
    return await _commit_detached(db, listing)


async def make_request(
    db,
    listing: Listing,
    beneficiary: SeededUser,
    *,
    requested_servings: int = 10,
    status: str = "approved",
    created_at: datetime | None = None,
) -> Request:
    # Inserted directly: the listing's servings_left is expected to already account for it.
    request = Request(
        listing_id=listing.id,
        beneficiary_id=beneficiary.id,
        requested_servings=requested_servings,
        status=status,
        created_by="test",
        updated_by="test",
    )
    if created_at is not None:
        request.created_at = created_at
    return await _commit_detached(db, request)


async def make_delivery(db, request: Request, courier: SeededUser, *, status: str = "assigned") -> Delivery:
    delivery = Delivery(
        request_id=request.id,
        delivery_agent_id=courier.id,
        pickup_address="42 Market Street",
        dropoff_address="7 Sunset Boulevard",
        status=status,
        created_by="test",
        updated_by="test",
    )
    return await _commit_detached(db, delivery)
