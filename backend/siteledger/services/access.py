"""Access Control Services

Effective permission lookup and idempotent seeding of permissions, roles
and the bootstrap admin user.
"""

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.config import settings
from siteledger.core.permissions import ADMIN_ROLE, ALL_PERMISSIONS, ROLE_DEFINITIONS
from siteledger.core.security import hash_password
from siteledger.models.access import (
    Permission,
    Role,
    RolePermission,
    User,
    UserPermission,
    UserRole,
)

logger = logging.getLogger(__name__)


async def get_user_role_name(db: AsyncSession, user_id: int) -> str | None:
    result = await db.execute(
        select(Role.name).join(UserRole, UserRole.role_id == Role.id).where(UserRole.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_role_permissions(db: AsyncSession, role_id: int) -> set[str]:
    result = await db.execute(
        select(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .where(RolePermission.role_id == role_id)
    )
    return {row[0] for row in result.all()}


async def get_user_permissions(db: AsyncSession, user_id: int) -> set[str]:
    """Permissions granted to the user directly"""
    result = await db.execute(
        select(Permission.name)
        .join(UserPermission, UserPermission.permission_id == Permission.id)
        .where(UserPermission.user_id == user_id)
    )
    return {row[0] for row in result.all()}


async def get_effective_permissions(db: AsyncSession, user_id: int) -> set[str]:
    """Role permissions united with direct user permissions"""
    result = await db.execute(
        select(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .where(UserRole.user_id == user_id)
    )
    permissions = {row[0] for row in result.all()}
    return permissions | await get_user_permissions(db, user_id)


async def resolve_permission_ids(db: AsyncSession, names: list[str]) -> dict[str, int]:
    result = await db.execute(select(Permission).where(Permission.name.in_(names)))
    return {p.name: p.id for p in result.scalars().all()}


async def seed_access_control(db: AsyncSession) -> None:
    """Upsert permissions and built-in roles; admin always gets everything"""

    existing = await resolve_permission_ids(db, ALL_PERMISSIONS)
    for name in ALL_PERMISSIONS:
        if name not in existing:
            db.add(Permission(name=name))
    await db.flush()
    permission_ids = await resolve_permission_ids(db, ALL_PERMISSIONS)

    for role_name, definition in ROLE_DEFINITIONS.items():
        result = await db.execute(select(Role).where(Role.name == role_name))
        role = result.scalar_one_or_none()
        created = role is None
        if created:
            role = Role(name=role_name, description=definition["description"])
            db.add(role)
            await db.flush()

        # Custom grants on existing non-admin roles are left alone
        if created or role_name == ADMIN_ROLE:
            current = await get_role_permissions(db, role.id)
            for name in definition["permissions"]:
                if name not in current:
                    db.add(RolePermission(role_id=role.id, permission_id=permission_ids[name]))

    await db.commit()
    logger.info(f"Access control seeded: {len(ALL_PERMISSIONS)} permissions")


async def ensure_admin_user(db: AsyncSession) -> User:
    """Create the bootstrap admin user when it does not exist yet"""

    result = await db.execute(select(User).where(User.email == settings.ADMIN_EMAIL))
    user = result.scalar_one_or_none()
    if user:
        return user

    role_result = await db.execute(select(Role).where(Role.name == ADMIN_ROLE))
    admin_role = role_result.scalar_one()

    user = User(
        name=settings.ADMIN_NAME,
        email=settings.ADMIN_EMAIL,
        password_hash=hash_password(settings.ADMIN_PASSWORD),
        status="active",
    )
    db.add(user)
    await db.flush()
    db.add(UserRole(user_id=user.id, role_id=admin_role.id))
    await db.commit()
    logger.info(f"Created bootstrap admin user {settings.ADMIN_EMAIL}")
    return user
