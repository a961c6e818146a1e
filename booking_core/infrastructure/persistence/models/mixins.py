"""Columns shared by every auditable table."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from booking_core.domain.models.base import utc_now


class AuditMixin:
    """Primary key, audit stamps and soft-delete marker.

    Actor ids are opaque UUIDs issued by the identity provider; there is no
    users table to reference.
    """

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    updated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    deleted_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
