from __future__ import annotations

import logging

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from app.core.errors import Conflict, Forbidden, InvalidState, NotFound
from app.core.security import ApiKeyParts, generate_api_key
from app.models.api_key import ApiKey
from app.models.user import ROLES, User
from app.services.audit import audit
from app.services.auth import Actor

log = logging.getLogger(__name__)

USER_STATUSES = ("pending", "approved", "suspended")
PROFILE_FIELDS = ("full_name", "phone_number", "address")
ADMIN_ONLY_FIELDS = ("role", "status", "is_active")


def normalize_role(role: str) -> str:
    # older clients send deliveryAgent / delivery_agent
    if role in ("deliveryAgent", "delivery_agent"):
        return "delivery"
    return role


async def provision_user(
    *,
    db: AsyncSession,
    full_name: str,
    email: str,
    role: str,
    phone_number: str | None = None,
    address: str | None = None,
    status: str | None = None,
) -> tuple[User, ApiKeyParts]:
    """
    Create a user with a fresh API key (internal bootstrap).
    Beneficiaries are approved immediately, other roles wait for an admin unless status is given.
    """
    role = normalize_role(role)
    if role not in ROLES:
        raise InvalidState(f"Unknown role: {role}")
    if status is None:
        status = "approved" if role == "beneficiary" else "pending"
    if status not in USER_STATUSES:
        raise InvalidState(f"Unknown user status: {status}")

    email = email.strip().lower()
    existing = (await db.execute(select(User.id).where(User.email == email))).scalar_one_or_none()
    if existing:
        raise Conflict("Email already registered")

    user = User(
        full_name=full_name,
        email=email,
        role=role,
        status=status,
        phone_number=phone_number,
        address=address,
        created_by="internal",
        updated_by="internal",
    )
    key = generate_api_key()

    try:
        db.add(user)
        await db.flush()  # user row first so the key can reference it
        db.add(ApiKey(user_id=user.id, key_prefix=key.prefix, key_hash=key.hashed, is_active=True))
        await db.flush()
    except IntegrityError:
        await db.rollback()
        log.exception("provision user failed: integrity error")
        raise Conflict("Email already registered")

    await audit(db, actor_user_id=None, action="user.provisioned", target_type="user", target_id=user.id)
    await db.flush()
    await db.refresh(user)
    return user, key


async def rotate_api_key(*, db: AsyncSession, user_id: str) -> ApiKeyParts:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise NotFound("User not found")

    # Disable previous keys
    await db.execute(
        update(ApiKey)
        .where(ApiKey.user_id == user_id, ApiKey.is_active == True)  # noqa: E712
        .values(is_active=False, rotated_at=func.now())
    )

    key = generate_api_key()
    db.add(ApiKey(user_id=user_id, key_prefix=key.prefix, key_hash=key.hashed, is_active=True))
    await audit(db, actor_user_id=None, action="user.api_key_rotated", target_type="user", target_id=user_id)
    await db.flush()
    return key


async def update_user_access(
    *,
    db: AsyncSession,
    actor_user_id: str,
    user_id: str,
    status: str | None = None,
    is_active: bool | None = None,
) -> User:
    stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
    user = (await db.execute(stmt)).scalar_one_or_none()
    if not user:
        raise NotFound("User not found")

    if status is not None:
        if status not in USER_STATUSES:
            raise InvalidState(f"Unknown user status: {status}")
        user.status = status
    if is_active is not None:
        user.is_active = is_active
    user.updated_by = actor_user_id

    await audit(
        db,
        actor_user_id=actor_user_id,
        action="user.access_changed",
        target_type="user",
        target_id=user_id,
        detail={"status": user.status, "is_active": user.is_active},
    )
    await db.flush()
    await db.refresh(user)
    return user


async def list_users(
    db: AsyncSession,
    *,
    role: str | None = None,
    include_pending: bool = False,
    active_only: bool = True,
    search: str | None = None,
    take: int = 100,
) -> list[User]:
    """Directory of users, newest first. Approved and active users only unless asked otherwise."""
    stmt = select(User)
    if not include_pending:
        stmt = stmt.where(User.status == "approved")
    if active_only:
        stmt = stmt.where(User.is_active.is_(True))
    if role:
        stmt = stmt.where(User.role == normalize_role(role))
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(User.full_name.ilike(pattern), User.email.ilike(pattern), User.address.ilike(pattern)))

    stmt = stmt.order_by(User.created_at.desc()).limit(take)
    return list((await db.execute(stmt)).scalars().all())


async def update_profile(
    *,
    db: AsyncSession,
    actor: Actor,
    user_id: str,
    changes: dict,
) -> User:
    """
    Users edit their own name, phone and address; admins may edit anyone,
    and only admins may touch role, status or is_active.
    """
    if not changes:
        raise InvalidState("No updates provided")

    is_admin = actor.role == "admin"
    if actor.user_id != user_id and not is_admin:
        raise Forbidden("You can only update your own profile")
    if not is_admin and any(field in changes for field in ADMIN_ONLY_FIELDS):
        raise Forbidden("Only admins can update role, status, or activity")

    unknown = set(changes) - set(PROFILE_FIELDS) - set(ADMIN_ONLY_FIELDS)
    if unknown:
        raise InvalidState(f"Fields not updatable: {', '.join(sorted(unknown))}")

    stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
    user = (await db.execute(stmt)).scalar_one_or_none()
    if not user:
        raise NotFound("User not found")

    for field, value in changes.items():
        if value is None and field != "address":
            continue
        if field == "role":
            value = normalize_role(value)
            if value not in ROLES:
                raise InvalidState(f"Unknown role: {value}")
        if field == "status" and value not in USER_STATUSES:
            raise InvalidState(f"Unknown user status: {value}")
        setattr(user, field, value)
    user.updated_by = actor.user_id

    await audit(
        db,
        actor_user_id=actor.user_id,
        action="user.profile_updated",
        target_type="user",
        target_id=user_id,
        detail={"fields": sorted(changes)},
    )
    await db.flush()
    await db.refresh(user)
    log.info("user %s updated by %s: %s", user_id, actor.user_id, ", ".join(sorted(changes)))
    return user
