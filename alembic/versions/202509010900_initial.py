"""initial schema: preferences, categories, transactions, budgets

Revision ID: 202509010900
Revises:
Create Date: 2025-09-01 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202509010900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "user_preferences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        sa.Column(
            "custom_period_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "custom_period_start_day", sa.Integer(), nullable=False, server_default="1"
        ),
        sa.Column(
            "custom_period_end_day", sa.Integer(), nullable=False, server_default="31"
        ),
        sa.Column(
            "currency_preference",
            sa.String(length=3),
            nullable=False,
            server_default="IDR",
        ),
        sa.Column(
            "date_format",
            sa.String(length=20),
            nullable=False,
            server_default="DD/MM/YYYY",
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "custom_period_start_day BETWEEN 1 AND 31",
            name="ck_preferences_start_day_range",
        ),
        sa.CheckConstraint(
            "custom_period_end_day BETWEEN 1 AND 31",
            name="ck_preferences_end_day_range",
        ),
    )

    op.create_table(
        "main_categories",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "type", "name", name="uq_main_category_user_type_name"
        ),
    )

    op.create_table(
        "subcategories",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "main_category_id",
            sa.String(length=36),
            sa.ForeignKey("main_categories.id"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("budget_amount_cents", sa.Integer()),
        *_timestamps(),
        sa.UniqueConstraint(
            "main_category_id", "name", name="uq_subcategory_parent_name"
        ),
    )
    op.create_index(
        "ix_subcategories_user_active", "subcategories", ["user_id", "is_active"]
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column(
            "status",
            sa.Enum("paid", "unpaid", name="transactionstatus"),
            nullable=False,
            server_default="paid",
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.String(length=36), nullable=False),
        sa.Column("description", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_user_date", "transactions", ["user_id", "date"])
    op.create_index(
        "ix_transactions_user_type_status_date",
        "transactions",
        ["user_id", "type", "status", "date"],
    )

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("period_start_date", sa.Date(), nullable=False),
        sa.Column("period_end_date", sa.Date(), nullable=False),
        sa.Column(
            "period_type",
            sa.Enum("monthly", "weekly", "yearly", "custom", name="periodtype"),
            nullable=False,
            server_default="monthly",
        ),
        sa.Column(
            "main_category_id",
            sa.String(length=36),
            sa.ForeignKey("main_categories.id"),
        ),
        sa.Column(
            "subcategory_id",
            sa.String(length=36),
            sa.ForeignKey("subcategories.id"),
        ),
        sa.Column("category_name", sa.String(length=100), nullable=False),
        sa.Column(
            "category_type",
            sa.Enum("income", "expense", name="transactiontype"),
            nullable=False,
        ),
        sa.Column("budgeted_amount_cents", sa.Integer(), nullable=False),
        sa.Column(
            "actual_amount_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("notes", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "budgeted_amount_cents >= 0", name="ck_budget_amount_positive"
        ),
        sa.CheckConstraint(
            "period_start_date <= period_end_date", name="ck_budget_period_order"
        ),
        sa.UniqueConstraint(
            "user_id",
            "subcategory_id",
            "period_start_date",
            "period_end_date",
            name="uq_budget_user_subcategory_period",
        ),
    )
    op.create_index(
        "ix_budget_user_period",
        "budgets",
        ["user_id", "period_start_date", "period_end_date"],
    )


def downgrade():
    op.drop_index("ix_budget_user_period", table_name="budgets")
    op.drop_table("budgets")
    op.drop_index("ix_transactions_user_type_status_date", table_name="transactions")
    op.drop_index("ix_transactions_user_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_subcategories_user_active", table_name="subcategories")
    op.drop_table("subcategories")
    op.drop_table("main_categories")
    op.drop_table("user_preferences")
