from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.ids import gen_id
from app.models.base import Base, AuditMixin


REQUEST_STATUSES = ("pending", "approved", "in_progress", "completed", "cancelled")


class Request(AuditMixin, Base):
    __tablename__ = "requests"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("req"))
    listing_id: Mapped[str] = mapped_column(String, ForeignKey("listings.id"), nullable=False, index=True)
    beneficiary_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)

    # immutable after creation; the amount released on cancellation
    requested_servings: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # "pending" | "approved" | "in_progress" | "completed" | "cancelled"
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", index=True)
