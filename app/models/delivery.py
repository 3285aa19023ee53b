from datetime import datetime

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from app.core.ids import gen_id
from app.models.base import Base, AuditMixin


DELIVERY_STATUSES = ("assigned", "picked_up", "delivered", "cancelled")
ACTIVE_DELIVERY_STATUSES = ("assigned", "picked_up")


class Delivery(AuditMixin, Base):
    __tablename__ = "deliveries"
    __table_args__ = (
        # one delivery per request; resolves concurrent acceptance
        UniqueConstraint("request_id", name="uq_delivery_request"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("dlv"))
    request_id: Mapped[str] = mapped_column(String, ForeignKey("requests.id"), nullable=False)
    delivery_agent_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)

    pickup_address: Mapped[str] = mapped_column(String(240), nullable=False)
    dropoff_address: Mapped[str] = mapped_column(String(240), nullable=False)

    # "assigned" | "picked_up" | "delivered" | "cancelled"
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="assigned", index=True)

    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    proof_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
