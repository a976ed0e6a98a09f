# backend/siteledger/api/deps.py
"""
Request dependencies: current user, access guard and site scoping.
"""

from dataclasses import dataclass, field
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.core.permissions import ADMIN_ROLE, required_permissions
from siteledger.core.security import decode_access_token
from siteledger.database import get_db
from siteledger.models.access import User
from siteledger.models.employee import Employee, SiteEmployee
from siteledger.services.access import get_effective_permissions, get_user_role_name

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AccessContext:
    """Authenticated caller with role and effective permissions"""

    user: User
    role: str | None = None
    permissions: set[str] = field(default_factory=set)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def has(self, *names: str) -> bool:
        return all(name in self.permissions for name in names)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


async def get_access_context(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AccessContext:
    role = await get_user_role_name(db, user.id)
    permissions = await get_effective_permissions(db, user.id)
    return AccessContext(user=user, role=role, permissions=permissions)


async def guard_api_access(
    request: Request,
    ctx: AccessContext = Depends(get_access_context),
) -> AccessContext:
    """Check the caller against the API access rule for this path and method"""
    required = required_permissions(request.url.path, request.method)
    if required:
        missing = [name for name in required if name not in ctx.permissions]
        if missing:
            raise HTTPException(
                status_code=403,
                detail=f"Missing permission: {', '.join(missing)}",
            )
    return ctx


def require_permission(ctx: AccessContext, name: str) -> None:
    if not ctx.has(name):
        raise HTTPException(status_code=403, detail=f"Missing permission: {name}")


async def assigned_site_ids(db: AsyncSession, user_id: int) -> list[int]:
    """Sites the user's employee record is assigned to"""
    result = await db.execute(
        select(SiteEmployee.site_id)
        .join(Employee, Employee.id == SiteEmployee.employee_id)
        .where(Employee.user_id == user_id)
    )
    return sorted({row[0] for row in result.all()})


async def scoped_site_ids(db: AsyncSession, ctx: AccessContext) -> list[int] | None:
    """None for admins (all sites), otherwise the assigned site ids"""
    if ctx.is_admin:
        return None
    return await assigned_site_ids(db, ctx.user.id)


async def ensure_site_access(db: AsyncSession, ctx: AccessContext, site_id: int) -> None:
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None and site_id not in site_ids:
        raise HTTPException(status_code=403, detail="Site is not assigned to current user")
