"""Tests for capability checks (supply_kernel/domain/access.py)."""

from uuid import uuid4

import pytest

from supply_kernel.domain.access import Actor, Role, require_owner, require_role
from supply_kernel.exceptions import AccessError, ForbiddenError


class TestRequireRole:

    def test_allowed_role_passes(self):
        require_role(Actor(uuid4(), Role.ADMIN), Role.ADMIN)

    def test_any_of_several_roles(self):
        require_role(Actor(uuid4(), Role.MANUFACTURER), Role.ADMIN, Role.MANUFACTURER)

    def test_other_role_forbidden(self):
        actor = Actor(uuid4(), Role.RETAILER)
        with pytest.raises(ForbiddenError) as exc_info:
            require_role(actor, Role.ADMIN)
        assert exc_info.value.actor_id == str(actor.actor_id)
        assert exc_info.value.code == "FORBIDDEN"
        assert isinstance(exc_info.value, AccessError)


class TestRequireOwner:

    def test_owner_passes(self):
        actor = Actor(uuid4(), Role.RETAILER)
        require_owner(actor, actor.actor_id, "SRN")

    def test_stranger_forbidden(self):
        with pytest.raises(ForbiddenError) as exc_info:
            require_owner(Actor(uuid4(), Role.RETAILER), uuid4(), "GRN")
        assert "GRN" in exc_info.value.reason

    def test_unowned_document_forbidden(self):
        with pytest.raises(ForbiddenError):
            require_owner(Actor(uuid4(), Role.RETAILER), None, "SRN")


class TestActor:

    def test_is_admin(self):
        assert Actor(uuid4(), Role.ADMIN).is_admin
        assert not Actor(uuid4(), Role.MANUFACTURER).is_admin

    def test_frozen(self):
        actor = Actor(uuid4(), Role.ADMIN)
        with pytest.raises(AttributeError):
            actor.role = Role.RETAILER
