import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import LifecycleError
from app.schemas.user import ApiKeyRotateOut, UserOut, UserProvision, UserProvisionOut
from app.services.internal_admin import require_internal_admin
from app.services.listings import expire_listings
from app.services.users import provision_user, rotate_api_key

log = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/internal/users",
    response_model=UserProvisionOut,
    status_code=201,
    dependencies=[Depends(require_internal_admin)],
)
async def internal_provision_user(payload: UserProvision, db: AsyncSession = Depends(get_db)) -> UserProvisionOut:
    """
    Bootstrap a user and hand back their API key once.
    In production, this would be internal-only (ops/admin).
    """
    try:
        user, key = await provision_user(db=db, **payload.model_dump())
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = UserProvisionOut(user=UserOut.model_validate(user), api_key=key.plain)
    await db.commit()
    log.info("provisioned user %s (%s)", user.id, user.role)
    return resp


@router.post(
    "/internal/users/{user_id}/api-keys/rotate",
    response_model=ApiKeyRotateOut,
    dependencies=[Depends(require_internal_admin)],
)
async def internal_rotate_api_key(user_id: str, db: AsyncSession = Depends(get_db)) -> ApiKeyRotateOut:
    try:
        key = await rotate_api_key(db=db, user_id=user_id)
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    await db.commit()
    return ApiKeyRotateOut(user_id=user_id, api_key=key.plain)


@router.post("/internal/listings/expire", dependencies=[Depends(require_internal_admin)])
async def internal_expire_listings(db: AsyncSession = Depends(get_db)) -> dict:
    count = await expire_listings(db, now=datetime.now(timezone.utc))
    await db.commit()
    return {"expired": count}
