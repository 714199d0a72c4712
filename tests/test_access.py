"""Tests for the ownership and role checks."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from estate_api.core.exceptions import Forbidden
from estate_api.models.property import Property
from estate_api.models.user import User, UserRole
from estate_api.services.access import can_mutate_property, owned_by, require_role
from estate_api.services.identity import Principal


def principal_for(user_id, role=UserRole.INDIVIDUAL) -> Principal:
    return Principal(id=user_id, email="someone@example.com", role=role)


class TestCanMutateProperty:
    """Tests for can_mutate_property."""

    def test_owner(self) -> None:
        owner_id = uuid4()
        assert can_mutate_property(principal_for(owner_id), Property(owner_id=owner_id))

    def test_non_owner(self) -> None:
        assert not can_mutate_property(principal_for(uuid4()), Property(owner_id=uuid4()))

    def test_admin_does_not_bypass_ownership(self) -> None:
        admin = principal_for(uuid4(), role=UserRole.ADMIN)
        assert not can_mutate_property(admin, Property(owner_id=uuid4()))


class TestOwnedBy:
    """owned_by selects exactly the rows can_mutate_property allows."""

    def test_matches_only_own_rows(self, db, owner, other_user, make_property) -> None:
        make_property(owner)
        make_property(owner)
        make_property(other_user)

        def count(principal):
            return db.execute(select(func.count(Property.id)).where(owned_by(principal))).scalar_one()

        assert count(principal_for(owner.id)) == 2
        assert count(principal_for(other_user.id)) == 1
        assert count(principal_for(uuid4(), role=UserRole.ADMIN)) == 0


class TestRequireRole:
    """Tests for require_role."""

    def test_matching_role(self) -> None:
        user = User(role=UserRole.ADMIN)
        assert require_role(user, UserRole.ADMIN) is user

    @pytest.mark.parametrize("role", [UserRole.INDIVIDUAL, UserRole.AGENCY])
    def test_other_roles_are_forbidden(self, role: UserRole) -> None:
        with pytest.raises(Forbidden) as exc_info:
            require_role(User(role=role), UserRole.ADMIN)
        assert exc_info.value.status_code == 403

    def test_missing_user_is_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            require_role(None, UserRole.ADMIN)
