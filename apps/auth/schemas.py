from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional


class RoleBase(BaseModel):
    name: str
    description: str = ""


class RoleCreate(RoleBase):
    pass


class RoleResponse(RoleBase):
    id: int

    class Config:
        from_attributes = True


class UserBase(BaseModel):
    id: int
    name: str
    email: str
    role: str = 'staff'
    garage_id: Optional[int] = None
    permissions: List[str] = []


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    role: str = 'staff'
    password: str = Field(..., min_length=6)
    garage_id: Optional[int] = None  # only honoured for super admins
    permissions: List[str] = []


class PermissionsUpdate(BaseModel):
    permissions: List[str]


class UserPermissions(BaseModel):
    user_id: int
    permissions: List[str]


class Token(BaseModel):
    access_token: str
    token_type: str


class ActorResponse(BaseModel):
    kind: str
    id: int
    garage_id: Optional[int]
    role: str
    name: str
