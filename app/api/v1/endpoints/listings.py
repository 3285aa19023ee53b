from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import LifecycleError
from app.schemas.listing import ListingCreate, ListingOut, ListingStatus, ListingUpdate
from app.services.auth import Actor, require_provider, require_roles
from app.services.listings import (
    create_listing,
    get_listing,
    list_listings,
    list_provider_listings,
    update_listing,
)

router = APIRouter()


@router.get("/listings", response_model=list[ListingOut])
async def browse_listings(
    status: ListingStatus | None = Query(default=None),
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    take: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[ListingOut]:
    rows = await list_listings(db, status=status, category=category, search=search, take=take)
    return [ListingOut.model_validate(r) for r in rows]


@router.get("/listings/mine", response_model=list[ListingOut])
async def my_listings(
    actor: Actor = Depends(require_provider),
    db: AsyncSession = Depends(get_db),
) -> list[ListingOut]:
    rows = await list_provider_listings(db, actor)
    return [ListingOut.model_validate(r) for r in rows]


@router.get("/listings/{listing_id}", response_model=ListingOut)
async def read_listing(listing_id: str, db: AsyncSession = Depends(get_db)) -> ListingOut:
    listing = await get_listing(db, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return ListingOut.model_validate(listing)


@router.post("/listings", response_model=ListingOut, status_code=201)
async def post_listing(
    payload: ListingCreate,
    actor: Actor = Depends(require_provider),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    try:
        listing = await create_listing(db=db, actor=actor, **payload.model_dump())
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = ListingOut.model_validate(listing)
    await db.commit()
    return resp


@router.patch("/listings/{listing_id}", response_model=ListingOut)
async def patch_listing(
    listing_id: str,
    payload: ListingUpdate,
    actor: Actor = Depends(require_roles("provider", "admin")),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    try:
        listing = await update_listing(
            db=db,
            actor=actor,
            listing_id=listing_id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    resp = ListingOut.model_validate(listing)
    await db.commit()
    return resp
