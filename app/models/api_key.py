from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from app.core.ids import gen_id
from app.models.base import Base


class ApiKey(Base):
    """One row per issued key. Rotation deactivates, never deletes."""

    __tablename__ = "api_keys"
    __table_args__ = (Index("ix_api_keys_user_active", "user_id", "is_active"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("key"))
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False)

    # the public part of fs_<prefix>_<secret>; hmac-sha256 hex of the whole key
    key_prefix: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    rotated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
