from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import LifecycleError
from app.schemas.user import RoleName, UserOut, UserUpdate
from app.services.auth import Actor, get_actor
from app.services.users import list_users, update_profile

router = APIRouter()


@router.get("/users", response_model=list[UserOut])
async def user_directory(
    role: RoleName | None = Query(default=None),
    include_pending: bool = Query(default=False),
    active_only: bool = Query(default=True),
    search: str | None = Query(default=None, min_length=2),
    take: int = Query(default=100, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> list[UserOut]:
    rows = await list_users(
        db,
        role=role,
        include_pending=include_pending,
        active_only=active_only,
        search=search,
        take=take,
    )
    return [UserOut.model_validate(r) for r in rows]


@router.put("/users/{user_id}", response_model=UserOut)
async def put_user(
    user_id: str,
    payload: UserUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> UserOut:
    try:
        user = await update_profile(
            db=db,
            actor=actor,
            user_id=user_id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = UserOut.model_validate(user)
    await db.commit()
    return resp
