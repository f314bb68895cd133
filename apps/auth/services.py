from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session
from apps.auth.models import UserModel, Role
from apps.auth.schemas import UserCreate, RoleCreate
from apps.garages.models import Garage
from core.config import settings
from core.database import get_db
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from fastapi import Depends, HTTPException, status
from passlib.context import CryptContext
from jose import JWTError, jwt
from fastapi.security import OAuth2PasswordBearer
from datetime import datetime, timedelta

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

SUPER_ADMIN = "super-admin"
ADMIN = "admin"
STAFF = "staff"
ROLE_DESCRIPTIONS = {
    SUPER_ADMIN: "Platform operator",
    ADMIN: "Garage administrator",
    STAFF: "Garage staff",
}

USER_PRINCIPAL = "user"
GARAGE_PRINCIPAL = "garage"


@dataclass(frozen=True)
class Actor:
    """Whoever is making the request: a user account or a garage account."""

    kind: str
    id: int
    garage_id: Optional[int]
    role: str
    name: str = ""

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    @property
    def is_garage_admin(self) -> bool:
        return self.role in (ADMIN, SUPER_ADMIN)

    def can_access_garage(self, garage_id: int) -> bool:
        return self.is_super_admin or self.garage_id == garage_id


def actor_for_user(user: UserModel) -> Actor:
    return Actor(
        kind=USER_PRINCIPAL,
        id=user.id,
        garage_id=user.garage_id,
        role=user.role.name if user.role else STAFF,
        name=user.name,
    )


def actor_for_garage(garage: Garage) -> Actor:
    # A garage logged in with its own credentials acts as its administrator
    return Actor(kind=GARAGE_PRINCIPAL, id=garage.id, garage_id=garage.id, role=ADMIN, name=garage.name)


def ensure_garage_access(actor: Actor, garage_id: int):
    if not actor.can_access_garage(garage_id):
        raise ForbiddenError("Access denied to this garage")


def get_password_hash(password):
    return pwd_context.hash(password)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def create_user(db: Session, user: UserCreate, created_by: Actor):
    role_obj = db.query(Role).filter(Role.name == user.role).first()
    if not role_obj:
        raise ValidationError(f"Role '{user.role}' does not exist.", field="role")

    if user.role == SUPER_ADMIN and not created_by.is_super_admin:
        raise ForbiddenError("Only a super admin can create super admins")

    garage_id = user.garage_id if created_by.is_super_admin else created_by.garage_id
    if user.role != SUPER_ADMIN:
        if garage_id is None:
            raise ValidationError("garage_id is required for garage users", field="garage_id")
        if not db.query(Garage).filter(Garage.id == garage_id).first():
            raise NotFoundError("Garage not found")

    if db.query(UserModel).filter(UserModel.email == user.email).first():
        raise ConflictError("Email already exists")

    db_user = UserModel(
        name=user.name,
        email=user.email,
        hashed_password=get_password_hash(user.password),
        role=role_obj,
        garage_id=None if user.role == SUPER_ADMIN else garage_id,
        permissions=list(dict.fromkeys(user.permissions)),
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def list_users(db: Session, actor: Actor, garage_id: Optional[int] = None):
    query = db.query(UserModel)
    if not actor.is_super_admin:
        garage_id = actor.garage_id
    if garage_id is not None:
        query = query.filter(UserModel.garage_id == garage_id)
    return query.order_by(UserModel.id).all()


def get_user(db: Session, user_id: int, actor: Actor) -> UserModel:
    """Load a user the actor may manage; garage admins only see their own garage's users."""
    user = db.query(UserModel).filter(UserModel.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    if not actor.is_super_admin and user.garage_id != actor.garage_id:
        raise ForbiddenError("Access denied to this user")
    return user


def update_permissions(db: Session, user_id: int, permissions: List[str], actor: Actor) -> UserModel:
    user = get_user(db, user_id, actor)
    # Order kept, duplicates dropped
    user.permissions = list(dict.fromkeys(permissions))
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int, actor: Actor) -> bool:
    user = get_user(db, user_id, actor)
    if actor.kind == USER_PRINCIPAL and actor.id == user.id:
        raise ForbiddenError("You cannot delete your own account")
    db.delete(user)
    db.commit()
    return True


def authenticate_user(db: Session, email: str, password: str):
    user = db.query(UserModel).filter(UserModel.email == email).first()
    if user and verify_password(password, user.hashed_password):
        return user
    return None


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def get_current_actor(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Your session expired, log out and log in again",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        kind = payload.get("kind", USER_PRINCIPAL)
        if subject is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    if kind == GARAGE_PRINCIPAL:
        garage = db.query(Garage).filter(Garage.id == int(subject)).first()
        if garage is None:
            raise credentials_exception
        return actor_for_garage(garage)

    user = db.query(UserModel).filter(UserModel.email == subject).first()
    if user is None:
        raise credentials_exception
    return actor_for_user(user)


def get_current_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_garage_admin:
        raise ForbiddenError("Admin privileges required")
    return actor


def get_current_super_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_super_admin:
        raise ForbiddenError("Super admin privileges required")
    return actor


# Role Management Functions
def get_role_by_name(db: Session, name: str):
    return db.query(Role).filter(Role.name == name).first()


def get_roles(db: Session, skip: int = 0, limit: int = 100):
    return db.query(Role).offset(skip).limit(limit).all()


def create_role(db: Session, role: RoleCreate):
    existing_role = get_role_by_name(db, role.name)
    if existing_role:
        raise ConflictError(f"Role '{role.name}' already exists")

    db_role = Role(**role.model_dump())
    db.add(db_role)
    db.commit()
    db.refresh(db_role)
    return db_role


def ensure_roles(db: Session):
    """Create the built-in roles that are missing. Returns the names created."""
    created = []
    for role_name, description in ROLE_DESCRIPTIONS.items():
        if not get_role_by_name(db, role_name):
            db.add(Role(name=role_name, description=description))
            created.append(role_name)
    db.commit()
    return created
