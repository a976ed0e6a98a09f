# backend/siteledger/api/users.py
"""User API Endpoints

User CRUD with single-role assignment, plus the caller's own profile.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.auth import user_out
from siteledger.api.common import ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import AccessContext, guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.core.security import hash_password
from siteledger.database import get_db
from siteledger.models.access import Role, User, UserRole
from siteledger.schemas.access import UserCreate, UserOut, UserUpdate
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta

router = APIRouter(prefix="/api/users", tags=["users"])

SORT_FIELDS = {
    "name": User.name,
    "email": User.email,
    "createdAt": User.created_at,
    "lastLogin": User.last_login,
}


def to_user_out(user: User) -> UserOut:
    out = UserOut.model_validate(user)
    if user.user_role is not None:
        out.role = user.user_role.role.name
    return out


async def load_user(db: AsyncSession, user_id: int) -> User:
    return await get_or_404(
        db,
        User,
        user_id,
        "User",
        options=[selectinload(User.user_role).selectinload(UserRole.role)],
    )


async def set_user_role(db: AsyncSession, user: User, role_id: Optional[int]) -> None:
    """Replace the user's role, a user holds at most one"""
    existing = await db.execute(select(UserRole).where(UserRole.user_id == user.id))
    current = existing.scalar_one_or_none()
    if role_id is None:
        if current is not None:
            await db.delete(current)
        return
    await ensure_exists(db, Role, role_id, "Role")
    if current is None:
        db.add(UserRole(user_id=user.id, role_id=role_id))
    else:
        current.role_id = role_id


@router.get("/me", response_model=DataResponse[UserOut])
async def get_me(ctx: AccessContext = Depends(guard_api_access)):
    """Current user with role and effective permissions"""
    return DataResponse[UserOut](data=user_out(ctx.user, ctx))


@router.get("", response_model=ListResponse[UserOut], dependencies=[Depends(guard_api_access)])
async def list_users(
    params: ListParams = Depends(list_params),
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    db: AsyncSession = Depends(get_db),
):
    query = select(User).options(selectinload(User.user_role).selectinload(UserRole.role))
    if status:
        query = query.where(User.status == status)
    rows, meta = await paginate(db, query, params, SORT_FIELDS, "createdAt", [User.name, User.email])
    return ListResponse[UserOut](data=[to_user_out(u) for u in rows], meta=PageMeta(**meta))


@router.get("/{user_id}", response_model=DataResponse[UserOut], dependencies=[Depends(guard_api_access)])
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await load_user(db, user_id)
    return DataResponse[UserOut](data=to_user_out(user))


@router.post(
    "",
    response_model=DataResponse[UserOut],
    status_code=201,
    dependencies=[Depends(guard_api_access)],
)
async def create_user(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    email = payload.email.lower()
    await ensure_unique(db, User, {"email": email}, "Email already registered")
    if payload.role_id is not None:
        await ensure_exists(db, Role, payload.role_id, "Role")

    user = User(
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        status=payload.status,
    )
    db.add(user)
    await db.flush()
    await set_user_role(db, user, payload.role_id)
    await db.commit()

    user = await load_user(db, user.id)
    return DataResponse[UserOut](data=to_user_out(user))


@router.patch("/{user_id}", response_model=DataResponse[UserOut], dependencies=[Depends(guard_api_access)])
async def update_user(user_id: int, payload: UserUpdate, db: AsyncSession = Depends(get_db)):
    user = await load_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        await ensure_unique(db, User, {"email": changes["email"]}, "Email already registered", user.id)
        user.email = changes["email"]
    if changes.get("name"):
        user.name = changes["name"]
    if changes.get("status"):
        user.status = changes["status"]
    if changes.get("password"):
        user.password_hash = hash_password(changes["password"])
    if "role_id" in changes:
        await set_user_role(db, user, changes["role_id"])

    await db.commit()
    user = await load_user(db, user_id)
    return DataResponse[UserOut](data=to_user_out(user))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    if user_id == ctx.user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = await get_or_404(db, User, user_id, "User")
    await db.delete(user)
    await db.commit()
    return Response(status_code=204)
