from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.user import User
from app.schemas.me import MeOut
from app.services.auth import Actor, get_actor

router = APIRouter()

@router.get("/me", response_model=MeOut)
async def me(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)) -> MeOut:
    user = (await db.execute(select(User).where(User.id == actor.user_id))).scalar_one()
    return MeOut(
        api_key_id=actor.api_key_id,
        user_id=actor.user_id,
        role=actor.role,
        full_name=user.full_name,
        email=user.email,
        status=user.status,
    )
