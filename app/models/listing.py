from datetime import datetime

from sqlalchemy import CheckConstraint, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from app.core.ids import gen_id
from app.models.base import Base, AuditMixin


LISTING_STATUSES = ("available", "reserved", "completed", "expired")


class Listing(AuditMixin, Base):
    __tablename__ = "listings"
    __table_args__ = (
        # servings_left only moves through the ledger; storage is the last line
        CheckConstraint(
            "servings_left >= 0 AND servings_left <= servings_total",
            name="ck_listing_servings_bounds",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("lst"))
    provider_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(140), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(60), nullable=False)
    food_type: Mapped[str] = mapped_column(String(60), nullable=False)

    # servings_total is fixed at creation
    servings_total: Mapped[int] = mapped_column(Integer, nullable=False)
    servings_left: Mapped[int] = mapped_column(Integer, nullable=False)

    # "available" | "reserved" | "completed" | "expired"
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="available", index=True)

    expiry_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    address: Mapped[str] = mapped_column(String(240), nullable=False)
    # stored for clients that show a map; no server-side geo search
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
