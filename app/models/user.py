from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.ids import gen_id
from app.models.base import Base, AuditMixin


ROLES = ("provider", "beneficiary", "delivery", "admin")


class User(AuditMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("usr"))

    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(String(240), nullable=True)

    # "provider" | "beneficiary" | "delivery" | "admin"
    role: Mapped[str] = mapped_column(String(30), nullable=False)

    # "pending" | "approved" | "suspended"; only approved users may act
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
