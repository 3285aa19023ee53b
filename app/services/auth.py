from dataclasses import dataclass
from fastapi import Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.security import api_key_prefix, hash_api_key
from app.models.api_key import ApiKey
from app.models.user import User

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass(frozen=True)
class Actor:
    api_key_id: str
    user_id: str
    role: str  # "provider" | "beneficiary" | "delivery" | "admin"


async def get_actor(
    api_key: str | None = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """
    Resolve X-API-Key to the acting user.
    401 for a missing or unknown key, 403 for a user who is not (or no longer) approved.
    """
    if not api_key:
        raise HTTPException(status_code=401, detail="Missing X-API-Key")

    prefix = api_key_prefix(api_key)
    if prefix is None:
        raise HTTPException(status_code=401, detail="Invalid API key")

    stmt = (
        select(ApiKey, User)
        .join(User, User.id == ApiKey.user_id)
        .where(
            ApiKey.key_prefix == prefix,
            ApiKey.key_hash == hash_api_key(api_key),
            ApiKey.is_active.is_(True),
        )
    )
    row = (await db.execute(stmt)).one_or_none()
    if not row:
        raise HTTPException(status_code=401, detail="Invalid API key")

    key, user = row
    if not user.is_active or user.status != "approved":
        raise HTTPException(status_code=403, detail="User is not approved")

    return Actor(api_key_id=key.id, user_id=user.id, role=user.role)


def require_roles(*roles: str):
    allowed = frozenset(roles)

    def _dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(status_code=403, detail="Forbidden")
        return actor

    return _dependency


require_admin = require_roles("admin")
require_provider = require_roles("provider")
require_beneficiary = require_roles("beneficiary")
require_delivery = require_roles("delivery")
