"""Advertising ORM models: pricing catalogs and ad slot reservations."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from booking_core.infrastructure.database import Base

from .mixins import AuditMixin


class AdPricingCatalog(AuditMixin, Base):
    __tablename__ = "ad_pricing_catalogs"

    channel: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    pricing_model: Mapped[str] = mapped_column(Text, nullable=False)  # CPM / CPC / FLAT
    base_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="USD")
    weekend_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False, default=1)
    holiday_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False, default=1)
    minimum_budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    maximum_budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AdSlotReservation(AuditMixin, Base):
    __tablename__ = "ad_slot_reservations"

    ad_slot_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    campaign_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    pricing_catalog_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("ad_pricing_catalogs.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="RESERVED")
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
