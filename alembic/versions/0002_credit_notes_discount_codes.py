"""Credit notes, discount codes and per-client discount code usage.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
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


_TABLES = ("credit_notes", "discount_codes", "discount_code_usages")


def upgrade() -> None:
    op.create_table(
        "credit_notes",
        *_audit_columns(),
        sa.Column(
            "invoice_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("invoices.id"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.Text, nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("status", sa.Text, nullable=False, server_default="ISSUED"),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_credit_notes_invoice_id", "credit_notes", ["invoice_id"])

    op.create_table(
        "discount_codes",
        *_audit_columns(),
        sa.Column("code", sa.Text, nullable=False),
        sa.Column("discount_type", sa.Text, nullable=False),
        sa.Column("percent_off", sa.Numeric(5, 2), nullable=True),
        sa.Column("amount_off", sa.Numeric(12, 2), nullable=True),
        sa.Column("currency", sa.Text, nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("max_redemptions_global", sa.Integer, nullable=True),
        sa.Column("max_redemptions_per_user", sa.Integer, nullable=True),
        sa.Column("used_count_global", sa.Integer, nullable=False, server_default="0"),
        sa.Column("minimum_purchase_amount", sa.Numeric(12, 2), nullable=True),
        sa.UniqueConstraint("code", name="uq_discount_codes_code"),
    )

    op.create_table(
        "discount_code_usages",
        *_audit_columns(),
        sa.Column(
            "discount_code_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("discount_codes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("first_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "discount_code_id", "client_id", name="uq_discount_code_usages_client"
        ),
    )
    op.create_index(
        "ix_discount_code_usages_discount_code_id",
        "discount_code_usages",
        ["discount_code_id"],
    )
    op.create_index("ix_discount_code_usages_client_id", "discount_code_usages", ["client_id"])

    for table in _TABLES:
        op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])


def downgrade() -> None:
    for table in reversed(_TABLES):
        op.drop_table(table)
