"""The authenticated principal on whose behalf a service call runs."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import Permission, RoleName


class Actor(BaseModel):
    """Identity, role and permission set resolved by the HTTP layer.

    Services treat this as already authenticated; they only authorise.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: RoleName
    permissions: frozenset[Permission] = Field(default_factory=frozenset)
