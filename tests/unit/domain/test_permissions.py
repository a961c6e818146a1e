"""Tests for booking_core/domain/services/permissions.py."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from booking_core.domain.errors import ForbiddenError
from booking_core.domain.models.actor import Actor
from booking_core.domain.models.enums import Permission, RoleName
from booking_core.domain.services.permissions import (
    has_permission,
    owns,
    require_owner_or_permission,
    require_permission,
)


def _actor(role=RoleName.HOST, *permissions):
    return Actor(id=uuid4(), role=role, permissions=frozenset(permissions))


def _owned_by(actor):
    return SimpleNamespace(owner_id=actor.id)


# --- has_permission ---

def test_super_admin_has_every_permission():
    admin = _actor(RoleName.SUPER_ADMIN)
    assert all(has_permission(admin, p) for p in Permission)


def test_plain_actor_needs_explicit_permission():
    actor = _actor(RoleName.ADMIN, Permission.TAG_CREATE)
    assert has_permission(actor, Permission.TAG_CREATE)
    assert not has_permission(actor, Permission.TAG_DELETE)


# --- owns ---

def test_owns_matches_owner_field():
    actor = _actor()
    assert owns(actor, _owned_by(actor), "owner_id")
    assert not owns(_actor(), _owned_by(actor), "owner_id")


def test_owns_is_false_without_owner_field():
    actor = _actor()
    assert not owns(actor, _owned_by(actor), None)


# --- require_permission ---

def test_require_permission_raises_forbidden():
    with pytest.raises(ForbiddenError, match="cannot create Tag"):
        require_permission(_actor(), Permission.TAG_CREATE, "create Tag")


def test_require_permission_passes_for_holder():
    require_permission(_actor(RoleName.ADMIN, Permission.TAG_CREATE), Permission.TAG_CREATE, "x")


# --- require_owner_or_permission ---

def _check(actor, entity):
    require_owner_or_permission(
        actor,
        entity,
        Permission.ACCOMMODATION_UPDATE_ANY,
        Permission.ACCOMMODATION_UPDATE_OWN,
        "owner_id",
        "update Accommodation",
    )


def test_owner_with_own_permission_passes():
    host = _actor(RoleName.HOST, Permission.ACCOMMODATION_UPDATE_OWN)
    _check(host, _owned_by(host))


def test_non_owner_with_own_permission_is_forbidden():
    host = _actor(RoleName.HOST, Permission.ACCOMMODATION_UPDATE_OWN)
    with pytest.raises(ForbiddenError):
        _check(host, _owned_by(_actor()))


def test_owner_without_own_permission_is_forbidden():
    host = _actor(RoleName.HOST)
    with pytest.raises(ForbiddenError):
        _check(host, _owned_by(host))


def test_any_permission_passes_for_non_owner():
    admin = _actor(RoleName.ADMIN, Permission.ACCOMMODATION_UPDATE_ANY)
    _check(admin, _owned_by(_actor()))
