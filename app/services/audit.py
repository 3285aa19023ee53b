from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog

log = logging.getLogger(__name__)


async def audit(
    db: AsyncSession,
    *,
    actor_user_id: str | None,
    action: str,
    target_type: str,
    target_id: str,
    detail: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction; it commits or rolls back with the change it records."""
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        detail=detail or {},
    )
    db.add(entry)
    log.debug("audit %s %s/%s by %s", action, target_type, target_id, actor_user_id or "internal")
    return entry
