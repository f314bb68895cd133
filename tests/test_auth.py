import itertools

import pytest

from apps.auth.models import UserModel
from apps.auth.schemas import UserCreate
from apps.auth.services import (
    ADMIN, STAFF, actor_for_user, create_user, delete_user, ensure_roles, get_user, list_users,
    update_permissions,
)
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError


@pytest.fixture
def add_user(db, garage_actor):
    ensure_roles(db)
    counter = itertools.count(1)

    def _add(created_by=None, **overrides):
        fields = {
            "name": "Kiran",
            "email": f"staff{next(counter)}@speedymotors.in",
            "password": "secret123",
        }
        fields.update(overrides)
        return create_user(db, UserCreate(**fields), created_by or garage_actor)

    return _add


def test_garage_admin_creates_staff_for_own_garage(add_user, garage, make_garage, make_user_actor):
    other = make_garage()
    admin = make_user_actor(garage, role=ADMIN)

    user = add_user(created_by=admin, garage_id=other.id, permissions=["billing", "billing", "reports"])

    assert user.garage_id == garage.id
    assert user.role.name == STAFF
    assert user.permissions == ["billing", "reports"]


def test_create_user_rules(add_user, make_user_actor, garage):
    add_user(email="kiran@speedymotors.in")

    with pytest.raises(ConflictError):
        add_user(email="kiran@speedymotors.in")
    with pytest.raises(ValidationError) as excinfo:
        add_user(role="owner")
    assert excinfo.value.field == "role"
    with pytest.raises(ForbiddenError):
        add_user(created_by=make_user_actor(garage, role=ADMIN), role="super-admin")


def test_users_are_listed_per_garage(db, add_user, garage_actor, make_garage, super_admin):
    own = add_user()
    other_garage = make_garage()
    add_user(created_by=super_admin, garage_id=other_garage.id)

    assert [u.id for u in list_users(db, garage_actor)] == [own.id]
    assert len(list_users(db, super_admin)) == 2


def test_update_permissions(db, add_user, garage_actor):
    user = add_user()

    updated = update_permissions(db, user.id, ["jobcards", "inventory", "jobcards"], garage_actor)

    assert updated.permissions == ["jobcards", "inventory"]
    assert get_user(db, user.id, garage_actor).permissions == ["jobcards", "inventory"]
    assert update_permissions(db, user.id, [], garage_actor).permissions == []


def test_users_of_another_garage_are_out_of_reach(db, add_user, make_garage, super_admin, garage_actor):
    other_garage = make_garage()
    outsider = add_user(created_by=super_admin, garage_id=other_garage.id)

    with pytest.raises(ForbiddenError):
        get_user(db, outsider.id, garage_actor)
    with pytest.raises(ForbiddenError):
        update_permissions(db, outsider.id, ["billing"], garage_actor)
    with pytest.raises(ForbiddenError):
        delete_user(db, outsider.id, garage_actor)

    assert get_user(db, outsider.id, super_admin).id == outsider.id


def test_delete_user(db, add_user, garage_actor):
    user = add_user()
    user_id = user.id

    assert delete_user(db, user_id, garage_actor) is True
    assert db.get(UserModel, user_id) is None
    with pytest.raises(NotFoundError):
        delete_user(db, user_id, garage_actor)


def test_users_cannot_delete_themselves(db, add_user):
    admin = add_user(role=ADMIN)

    with pytest.raises(ForbiddenError):
        delete_user(db, admin.id, actor_for_user(admin))
