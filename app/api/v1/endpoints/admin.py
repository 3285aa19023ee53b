from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import LifecycleError
from app.schemas.admin import AnalyticsSummaryOut
from app.schemas.user import UserAccessUpdate, UserOut
from app.services.analytics import summary
from app.services.auth import Actor, require_admin
from app.services.users import update_user_access

router = APIRouter()


@router.get("/admin/analytics/summary", response_model=AnalyticsSummaryOut)
async def analytics_summary(
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AnalyticsSummaryOut:
    return AnalyticsSummaryOut(**await summary(db))


@router.patch("/admin/users/{user_id}", response_model=UserOut)
async def patch_user_access(
    user_id: str,
    payload: UserAccessUpdate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserOut:
    try:
        user = await update_user_access(
            db=db,
            actor_user_id=actor.user_id,
            user_id=user_id,
            status=payload.status,
            is_active=payload.is_active,
        )
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = UserOut.model_validate(user)
    await db.commit()
    return resp
