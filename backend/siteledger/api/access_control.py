# backend/siteledger/api/access_control.py
"""Access Control API Endpoints

Roles, the permission catalogue, and permission grants per role and per user.
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import ensure_unique, get_or_404
from siteledger.api.deps import guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.core.permissions import ADMIN_ROLE, ROLE_DEFINITIONS
from siteledger.database import get_db
from siteledger.models.access import Permission, Role, RolePermission, User, UserPermission
from siteledger.schemas.access import (
    PermissionAssignment,
    PermissionList,
    PermissionOut,
    RoleCreate,
    RoleOut,
    RoleUpdate,
)
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.services.access import (
    get_role_permissions,
    get_user_permissions,
    resolve_permission_ids,
)

router = APIRouter(
    prefix="/api/access-control",
    tags=["access-control"],
    dependencies=[Depends(guard_api_access)],
)


async def resolve_assignment(db: AsyncSession, names: list[str]) -> dict[str, int]:
    names = sorted(set(names))
    ids = await resolve_permission_ids(db, names)
    unknown = [name for name in names if name not in ids]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown permissions: {', '.join(unknown)}")
    return ids


@router.get("/permissions", response_model=ListResponse[PermissionOut])
async def list_permissions(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
):
    """List the permission catalogue"""
    rows, meta = await paginate(
        db,
        select(Permission),
        params,
        {"name": Permission.name, "createdAt": Permission.created_at},
        "name",
        [Permission.name],
    )
    return ListResponse[PermissionOut](
        data=[PermissionOut.model_validate(p) for p in rows], meta=PageMeta(**meta)
    )


@router.get("/roles", response_model=ListResponse[RoleOut])
async def list_roles(params: ListParams = Depends(list_params), db: AsyncSession = Depends(get_db)):
    rows, meta = await paginate(
        db,
        select(Role),
        params,
        {"name": Role.name, "createdAt": Role.created_at},
        "createdAt",
        [Role.name, Role.description],
    )
    return ListResponse[RoleOut](data=[RoleOut.model_validate(r) for r in rows], meta=PageMeta(**meta))


@router.get("/roles/{role_id}", response_model=DataResponse[RoleOut])
async def get_role(role_id: int, db: AsyncSession = Depends(get_db)):
    role = await get_or_404(db, Role, role_id, "Role")
    return DataResponse[RoleOut](data=RoleOut.model_validate(role))


@router.post("/roles", response_model=DataResponse[RoleOut], status_code=201)
async def create_role(payload: RoleCreate, db: AsyncSession = Depends(get_db)):
    await ensure_unique(db, Role, {"name": payload.name}, "Role name already exists")
    role = Role(name=payload.name, description=payload.description)
    db.add(role)
    await db.commit()
    await db.refresh(role)
    return DataResponse[RoleOut](data=RoleOut.model_validate(role))


@router.patch("/roles/{role_id}", response_model=DataResponse[RoleOut])
async def update_role(role_id: int, payload: RoleUpdate, db: AsyncSession = Depends(get_db)):
    role = await get_or_404(db, Role, role_id, "Role")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") and changes["name"] != role.name:
        if role.name in ROLE_DEFINITIONS:
            raise HTTPException(status_code=400, detail="Built-in roles cannot be renamed")
        await ensure_unique(db, Role, {"name": changes["name"]}, "Role name already exists", role.id)
        role.name = changes["name"]
    if "description" in changes:
        role.description = changes["description"]
    await db.commit()
    await db.refresh(role)
    return DataResponse[RoleOut](data=RoleOut.model_validate(role))


@router.delete("/roles/{role_id}", status_code=204)
async def delete_role(role_id: int, db: AsyncSession = Depends(get_db)):
    role = await get_or_404(db, Role, role_id, "Role")
    if role.name in ROLE_DEFINITIONS:
        raise HTTPException(status_code=400, detail="Built-in roles cannot be deleted")
    await db.delete(role)
    await db.commit()
    return Response(status_code=204)


@router.get("/roles/{role_id}/permissions", response_model=DataResponse[PermissionList])
async def get_role_permission_names(role_id: int, db: AsyncSession = Depends(get_db)):
    await get_or_404(db, Role, role_id, "Role")
    names = await get_role_permissions(db, role_id)
    return DataResponse[PermissionList](data=PermissionList(permissions=sorted(names)))


@router.put("/roles/{role_id}/permissions", response_model=DataResponse[PermissionList])
async def replace_role_permissions(
    role_id: int,
    payload: PermissionAssignment,
    db: AsyncSession = Depends(get_db),
):
    """Replace every permission of a role"""
    role = await get_or_404(db, Role, role_id, "Role")
    if role.name == ADMIN_ROLE:
        raise HTTPException(status_code=400, detail="Admin role always holds every permission")
    ids = await resolve_assignment(db, payload.permissions)

    await db.execute(delete(RolePermission).where(RolePermission.role_id == role_id))
    for permission_id in ids.values():
        db.add(RolePermission(role_id=role_id, permission_id=permission_id))
    await db.commit()

    names = await get_role_permissions(db, role_id)
    return DataResponse[PermissionList](data=PermissionList(permissions=sorted(names)))


@router.get("/users/{user_id}/permissions", response_model=DataResponse[PermissionList])
async def get_user_permission_names(user_id: int, db: AsyncSession = Depends(get_db)):
    """Permissions granted to the user directly (role permissions excluded)"""
    await get_or_404(db, User, user_id, "User")
    names = await get_user_permissions(db, user_id)
    return DataResponse[PermissionList](data=PermissionList(permissions=sorted(names)))


@router.put("/users/{user_id}/permissions", response_model=DataResponse[PermissionList])
async def replace_user_permissions(
    user_id: int,
    payload: PermissionAssignment,
    db: AsyncSession = Depends(get_db),
):
    await get_or_404(db, User, user_id, "User")
    ids = await resolve_assignment(db, payload.permissions)

    await db.execute(delete(UserPermission).where(UserPermission.user_id == user_id))
    for permission_id in ids.values():
        db.add(UserPermission(user_id=user_id, permission_id=permission_id))
    await db.commit()

    names = await get_user_permissions(db, user_id)
    return DataResponse[PermissionList](data=PermissionList(permissions=sorted(names)))
