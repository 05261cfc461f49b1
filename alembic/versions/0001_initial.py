"""Начальная схема: пользователи, ПВЗ, приемки, товары

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("role", sa.Enum("employee", "moderator", name="user_role"), nullable=False),
    )
    op.create_table(
        "pvz",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("registration_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("city", sa.Enum("Moscow", "SaintPetersburg", "Kazan", name="pvz_city"), nullable=False),
    )
    op.create_index("ix_pvz_registration_date", "pvz", ["registration_date"])

    op.create_table(
        "receptions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("date_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pvz_id", sa.String(), sa.ForeignKey("pvz.id"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum("in_progress", "close", name="reception_status"), nullable=False),
        sa.UniqueConstraint("pvz_id", "seq", name="uq_receptions_pvz_seq"),
    )
    op.create_index(
        "uq_receptions_open_per_pvz",
        "receptions",
        ["pvz_id"],
        unique=True,
        postgresql_where=sa.text("status = 'in_progress'"),
        sqlite_where=sa.text("status = 'in_progress'"),
    )
    op.create_index("ix_receptions_date_time", "receptions", ["date_time"])

    op.create_table(
        "products",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("date_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "type",
            sa.Enum("electronics", "clothing", "footwear", name="product_type"),
            nullable=False,
        ),
        sa.Column("reception_id", sa.String(), sa.ForeignKey("receptions.id"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.UniqueConstraint("reception_id", "seq", name="uq_products_reception_seq"),
    )


def downgrade() -> None:
    op.drop_table("products")
    op.drop_index("ix_receptions_date_time", table_name="receptions")
    op.drop_index("uq_receptions_open_per_pvz", table_name="receptions")
    op.drop_table("receptions")
    op.drop_index("ix_pvz_registration_date", table_name="pvz")
    op.drop_table("pvz")
    op.drop_table("users")
    sa.Enum(name="product_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="reception_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="pvz_city").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
