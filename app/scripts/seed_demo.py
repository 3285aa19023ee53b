import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from app.core.config import settings
from app.core.telemetry import configure_logging
from app.models.listing import Listing
from app.models.user import User
from app.services.users import provision_user

log = logging.getLogger(__name__)

DEMO_USERS = [
    ("Platform Admin", "admin@foodshare.org", "admin"),
    ("Good Bites Kitchen", "provider@foodshare.org", "provider"),
    ("Community Center", "beneficiary@foodshare.org", "beneficiary"),
    ("Delivery Hero", "delivery@foodshare.org", "delivery"),
]


async def main():
    configure_logging()
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    async with Session() as db:
        provider_id = None
        for full_name, email, role in DEMO_USERS:
            existing = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
            if existing:
                log.info("%s already exists", email)
                user = existing
            else:
                user, key = await provision_user(db=db, full_name=full_name, email=email, role=role, status="approved")
                print(f"{role:12} {email:28} X-API-Key: {key.plain}")
            if role == "provider":
                provider_id = user.id

        has_listing = (
            await db.execute(select(Listing.id).where(Listing.provider_id == provider_id).limit(1))
        ).scalar_one_or_none()
        if not has_listing:
            db.add(Listing(
                provider_id=provider_id,
                title="Family Meal Prep Bowls",
                description="Balanced bowls with grains, greens, and lean protein. Refrigerated and ready.",
                category="prepared",
                food_type="meal",
                servings_total=40,
                servings_left=40,
                status="available",
                expiry_at=datetime.now(timezone.utc) + timedelta(days=1),
                address="42 Market Street",
                latitude=37.7749,
                longitude=-122.4194,
                created_by="internal",
                updated_by="internal",
            ))
            log.info("inserted demo listing")

        await db.commit()

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())
