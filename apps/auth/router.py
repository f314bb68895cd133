from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from apps.auth.schemas import (
    UserBase, UserCreate, Token, RoleCreate, RoleResponse, ActorResponse, PermissionsUpdate, UserPermissions,
)
from apps.auth.models import UserModel
from apps.auth.services import (
    Actor, authenticate_user, create_access_token, create_role, create_user, delete_user, get_current_actor,
    get_current_admin, get_current_super_admin, get_roles, get_user, list_users, update_permissions,
    USER_PRINCIPAL,
)
from core.database import get_db
from fastapi.security import OAuth2PasswordRequestForm
from typing import List, Optional

router = APIRouter()


def user_to_response(user: UserModel) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.name if user.role else "unknown",
        "garage_id": user.garage_id,
        "permissions": user.permissions or [],
    }


@router.post("/token", response_model=Token)
def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate_user(db, email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    access_token = create_access_token(data={"sub": user.email, "kind": USER_PRINCIPAL})
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/users", response_model=UserBase, status_code=status.HTTP_201_CREATED)
def create_new_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
):
    """Garage admins create staff for their own garage; super admins for any garage."""
    return user_to_response(create_user(db, user, admin))


@router.get("/users", response_model=List[UserBase])
def list_all_users(
    garage_id: Optional[int] = None,
    db: Session = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
):
    users = list_users(db, admin, garage_id)
    return [user_to_response(user) for user in users]


@router.get("/users/me", response_model=ActorResponse)
def read_users_me(actor: Actor = Depends(get_current_actor)):
    """Returns the authenticated principal, user or garage."""
    return {
        "kind": actor.kind,
        "id": actor.id,
        "garage_id": actor.garage_id,
        "role": actor.role,
        "name": actor.name,
    }


@router.get("/users/{user_id}/permissions", response_model=UserPermissions)
def get_user_permissions(user_id: int, db: Session = Depends(get_db), admin: Actor = Depends(get_current_admin)):
    user = get_user(db, user_id, admin)
    return {"user_id": user.id, "permissions": user.permissions or []}


@router.put("/users/{user_id}/permissions", response_model=UserBase)
def update_user_permissions(
    user_id: int,
    payload: PermissionsUpdate,
    db: Session = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
):
    return user_to_response(update_permissions(db, user_id, payload.permissions, admin))


@router.delete("/users/{user_id}")
def remove_user(user_id: int, db: Session = Depends(get_db), admin: Actor = Depends(get_current_admin)):
    delete_user(db, user_id, admin)
    return {"message": "User deleted successfully"}


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
def create_new_role(role: RoleCreate, db: Session = Depends(get_db), admin: Actor = Depends(get_current_super_admin)):
    return create_role(db, role)


@router.get("/roles", response_model=List[RoleResponse])
def get_all_roles(skip: int = 0, limit: int = 100, db: Session = Depends(get_db), admin: Actor = Depends(get_current_admin)):
    return get_roles(db, skip=skip, limit=limit)
