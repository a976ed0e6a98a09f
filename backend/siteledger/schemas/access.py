"""Auth, user, role and permission schemas"""

from datetime import datetime
from typing import Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class LoginRequest(ApiModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(ApiModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class UserOut(ApiModel):
    id: int
    name: str
    email: str
    status: str
    last_login: Optional[datetime] = None
    created_at: datetime
    role: Optional[str] = None
    permissions: list[str] = []


class TokenOut(ApiModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class UserCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    status: str = Field("active", pattern="^(active|inactive)$")
    role_id: Optional[int] = None


class UserUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: Optional[str] = Field(None, min_length=6)
    status: Optional[str] = Field(None, pattern="^(active|inactive)$")
    role_id: Optional[int] = None


class RoleCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)


class RoleUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)


class RoleOut(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime


class PermissionOut(ApiModel):
    id: int
    name: str
    description: Optional[str] = None


class PermissionAssignment(ApiModel):
    """Replace-all list of permission names"""

    permissions: list[str]


class PermissionList(ApiModel):
    permissions: list[str]
