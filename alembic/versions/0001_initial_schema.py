"""Initial schema: catalog, billing, promotions and advertising tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    """id, audit stamps and the soft-delete marker carried by every entity table."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_id", postgresql.UUID(as_uuid=True), nullable=True),
    ]


def _money(name: str, nullable: bool = False, **kwargs) -> sa.Column:  # type: ignore[no-untyped-def]
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, **kwargs)


_AUDITED_TABLES = (
    "destinations",
    "accommodations",
    "tags",
    "event_organizers",
    "events",
    "pricing_plans",
    "subscriptions",
    "invoices",
    "invoice_lines",
    "payments",
    "promotions",
    "ad_pricing_catalogs",
    "ad_slot_reservations",
)


def upgrade() -> None:
    # ------------------------------------------------------------------ #
    # 1. CATALOG                                                           #
    # ------------------------------------------------------------------ #

    op.create_table(
        "destinations",
        *_audit_columns(),
        sa.Column("slug", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("country", sa.Text, nullable=False),
        sa.Column("region", sa.Text, nullable=True),
        sa.Column("city", sa.Text, nullable=True),
        sa.Column("lifecycle_state", sa.Text, nullable=False, server_default="ACTIVE"),
        sa.Column("visibility", sa.Text, nullable=False, server_default="PUBLIC"),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("slug", name="uq_destinations_slug"),
    )

    op.create_table(
        "accommodations",
        *_audit_columns(),
        sa.Column("slug", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column(
            "destination_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("destinations.id"),
            nullable=False,
        ),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        _money("price", nullable=True),
        sa.Column("currency", sa.Text, nullable=False, server_default="ARS"),
        sa.Column("max_guests", sa.Integer, nullable=False, server_default="1"),
        sa.Column("lifecycle_state", sa.Text, nullable=False, server_default="ACTIVE"),
        sa.Column("visibility", sa.Text, nullable=False, server_default="PUBLIC"),
        sa.Column("moderation_state", sa.Text, nullable=False, server_default="PENDING"),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("slug", name="uq_accommodations_slug"),
    )
    op.create_index("ix_accommodations_destination_id", "accommodations", ["destination_id"])
    op.create_index("ix_accommodations_owner_id", "accommodations", ["owner_id"])

    op.create_table(
        "tags",
        *_audit_columns(),
        sa.Column("slug", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("color", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("lifecycle_state", sa.Text, nullable=False, server_default="ACTIVE"),
        sa.UniqueConstraint("slug", name="uq_tags_slug"),
    )

    op.create_table(
        "entity_tags",
        sa.Column(
            "tag_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("entity_type", sa.Text, primary_key=True),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), primary_key=True),
    )
    op.create_index("ix_entity_tags_entity_id", "entity_tags", ["entity_id"])

    op.create_table(
        "event_organizers",
        *_audit_columns(),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("contact_email", sa.Text, nullable=True),
        sa.Column("website", sa.Text, nullable=True),
    )

    op.create_table(
        "events",
        *_audit_columns(),
        sa.Column("slug", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("category", sa.Text, nullable=False),
        sa.Column(
            "organizer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("event_organizers.id"),
            nullable=True,
        ),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.Text, nullable=True),
        sa.Column("lifecycle_state", sa.Text, nullable=False, server_default="ACTIVE"),
        sa.Column("visibility", sa.Text, nullable=False, server_default="PUBLIC"),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("slug", name="uq_events_slug"),
    )
    op.create_index("ix_events_start_at", "events", ["start_at"])

    # ------------------------------------------------------------------ #
    # 2. BILLING                                                           #
    # ------------------------------------------------------------------ #

    op.create_table(
        "pricing_plans",
        *_audit_columns(),
        sa.Column("name", sa.Text, nullable=False),
        _money("amount"),
        sa.Column("currency", sa.Text, nullable=False),
        sa.Column("billing_interval", sa.Text, nullable=True),
        sa.Column("interval_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "subscriptions",
        *_audit_columns(),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "pricing_plan_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("pricing_plans.id"),
            nullable=False,
        ),
        sa.Column("status", sa.Text, nullable=False, server_default="PENDING"),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_subscriptions_client_id", "subscriptions", ["client_id"])

    op.create_table(
        "invoices",
        *_audit_columns(),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "subscription_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscriptions.id"),
            nullable=True,
        ),
        sa.Column("invoice_number", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="OPEN"),
        _money("subtotal_amount", server_default="0"),
        _money("tax_amount", server_default="0"),
        _money("total_amount", server_default="0"),
        sa.Column("currency", sa.Text, nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("invoice_number", name="uq_invoices_number"),
    )
    op.create_index("ix_invoices_client_id", "invoices", ["client_id"])
    op.create_index("ix_invoices_due_at", "invoices", ["due_at"])

    op.create_table(
        "invoice_lines",
        *_audit_columns(),
        sa.Column(
            "invoice_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        _money("unit_price"),
        sa.Column("tax_rate", sa.Numeric(6, 4), nullable=False, server_default="0"),
        sa.Column("discount_rate", sa.Numeric(6, 4), nullable=False, server_default="0"),
        _money("discount_amount", server_default="0"),
        _money("line_amount"),
        _money("tax_amount"),
        _money("total_amount"),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_invoice_lines_invoice_id", "invoice_lines", ["invoice_id"])

    op.create_table(
        "payments",
        *_audit_columns(),
        sa.Column(
            "invoice_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("invoices.id"),
            nullable=False,
        ),
        _money("amount"),
        sa.Column("currency", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="PENDING"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_payments_invoice_id", "payments", ["invoice_id"])

    op.create_table(
        "promotions",
        *_audit_columns(),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("rules", sa.JSON, nullable=True),
        sa.Column("benefit", sa.JSON, nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
    )

    # ------------------------------------------------------------------ #
    # 3. ADVERTISING                                                       #
    # ------------------------------------------------------------------ #

    op.create_table(
        "ad_pricing_catalogs",
        *_audit_columns(),
        sa.Column("channel", sa.Text, nullable=False),
        sa.Column("pricing_model", sa.Text, nullable=False),
        sa.Column("base_price", sa.Numeric(12, 4), nullable=False),
        sa.Column("currency", sa.Text, nullable=False, server_default="USD"),
        sa.Column("weekend_multiplier", sa.Numeric(6, 4), nullable=False, server_default="1"),
        sa.Column("holiday_multiplier", sa.Numeric(6, 4), nullable=False, server_default="1"),
        _money("minimum_budget", nullable=True),
        _money("maximum_budget", nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_ad_pricing_catalogs_channel", "ad_pricing_catalogs", ["channel"])

    op.create_table(
        "ad_slot_reservations",
        *_audit_columns(),
        sa.Column("ad_slot_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "pricing_catalog_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("ad_pricing_catalogs.id"),
            nullable=True,
        ),
        sa.Column("status", sa.Text, nullable=False, server_default="RESERVED"),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_ad_slot_reservations_ad_slot_id", "ad_slot_reservations", ["ad_slot_id"])
    op.create_index(
        "ix_ad_slot_reservations_campaign_id", "ad_slot_reservations", ["campaign_id"]
    )

    # Soft-delete marker index on every audited table.
    for table in _AUDITED_TABLES:
        op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])


def downgrade() -> None:
    for table in reversed(_AUDITED_TABLES):
        if table == "tags":
            op.drop_table("entity_tags")
        op.drop_table(table)
