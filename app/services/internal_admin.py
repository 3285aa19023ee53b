import logging
import secrets

from fastapi import Header, HTTPException

from app.core.config import UNSET_SECRET, settings

log = logging.getLogger(__name__)


async def require_internal_admin(
    x_internal_admin_key: str | None = Header(default=None, alias="X-Internal-Admin-Key"),
) -> None:
    """Ops-only gate for provisioning users, rotating keys and running sweeps."""
    if settings.internal_admin_key == UNSET_SECRET:
        log.error("internal endpoint called but INTERNAL_ADMIN_KEY is not configured")
        raise HTTPException(status_code=503, detail="Internal admin key not configured")

    if not x_internal_admin_key or not secrets.compare_digest(
        x_internal_admin_key.encode("utf-8"), settings.internal_admin_key.encode("utf-8")
    ):
        raise HTTPException(status_code=403, detail="Internal admin key required")
