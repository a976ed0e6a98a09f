# backend/siteledger/api/auth.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from siteledger.database import get_db, utcnow
from siteledger.core.security import hash_password, verify_password, create_access_token
from siteledger.models.access import User
from siteledger.schemas.access import ChangePasswordRequest, LoginRequest, TokenOut, UserOut
from siteledger.schemas.common import DataResponse, MessageResponse
from siteledger.api.deps import AccessContext, get_access_context, get_current_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


def user_out(user: User, ctx: AccessContext | None = None) -> UserOut:
    out = UserOut.model_validate(user)
    if ctx is not None:
        out.role = ctx.role
        out.permissions = sorted(ctx.permissions)
    return out


@router.post("/login", response_model=DataResponse[TokenOut])
async def login(req: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    result = await db.execute(select(User).where(User.email == req.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")

    user.last_login = utcnow()
    await db.commit()

    ctx = await get_access_context(user=user, db=db)
    token = create_access_token(user.id)
    return DataResponse[TokenOut](
        data=TokenOut(access_token=token, user=user_out(user, ctx))
    )


@router.post("/change-password", response_model=DataResponse[MessageResponse])
async def change_password(
    req: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(req.current_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    current_user.password_hash = hash_password(req.new_password)
    await db.commit()
    return DataResponse[MessageResponse](data=MessageResponse(message="Password updated"))
