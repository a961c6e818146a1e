"""Authorisation helpers shared by every entity service.

SUPER_ADMIN passes every check. Everyone else needs the exact permission,
except where an "own" variant applies and the actor owns the entity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from booking_core.domain.errors import ForbiddenError
from booking_core.domain.models.actor import Actor
from booking_core.domain.models.enums import Permission, RoleName


@dataclass(frozen=True)
class EntityPermissions:
    """Permission bundle one service checks against.

    ``*_own`` permissions are optional; when None the entity has no notion of
    ownership for that action and only the ``*_any`` permission grants it.
    ``view_all`` grants access to non-public and soft-deleted rows.
    """

    create: Permission
    update_any: Permission
    delete_any: Permission
    restore: Permission
    hard_delete: Permission
    update_own: Permission | None = None
    delete_own: Permission | None = None
    view_all: Permission | None = None


def is_super_admin(actor: Actor) -> bool:
    return actor.role is RoleName.SUPER_ADMIN


def has_permission(actor: Actor, permission: Permission) -> bool:
    return is_super_admin(actor) or permission in actor.permissions


def owns(actor: Actor, entity: Any, owner_field: str | None) -> bool:
    if owner_field is None:
        return False
    owner_id: UUID | None = getattr(entity, owner_field, None)
    return owner_id is not None and owner_id == actor.id


def require_permission(actor: Actor, permission: Permission, action: str) -> None:
    if not has_permission(actor, permission):
        raise ForbiddenError(f"Permission denied: cannot {action}")


def require_owner_or_permission(
    actor: Actor,
    entity: Any,
    any_permission: Permission,
    own_permission: Permission | None,
    owner_field: str | None,
    action: str,
) -> None:
    """Author-or-admin check.

    Passes with *any_permission*, or with *own_permission* when the actor
    owns *entity*.
    """
    if has_permission(actor, any_permission):
        return
    if own_permission is not None and has_permission(actor, own_permission) and owns(
        actor, entity, owner_field
    ):
        return
    raise ForbiddenError(f"Permission denied: cannot {action}")
