from getpass import getpass
from core.database import SessionLocal
from apps.garages.models import Garage  # noqa: F401  registers the users.garage_id target
from apps.auth.models import UserModel, Role
from apps.auth.services import ensure_roles, get_password_hash, SUPER_ADMIN


def create_admin():
    db = SessionLocal()
    try:
        for role_name in ensure_roles(db):
            print(f"Created role: {role_name}")

        email = input("Super admin email: ")
        name = input("Super admin name: ")
        password = getpass("Super admin password: ")

        if db.query(UserModel).filter(UserModel.email == email).first():
            print(f"A user with email {email} already exists.")
            return

        super_admin_role = db.query(Role).filter(Role.name == SUPER_ADMIN).first()
        admin = UserModel(
            name=name,
            email=email,
            hashed_password=get_password_hash(password),
            role=super_admin_role,
        )
        db.add(admin)
        db.commit()
        print("Super admin account created.")
    finally:
        db.close()


if __name__ == "__main__":
    create_admin()
