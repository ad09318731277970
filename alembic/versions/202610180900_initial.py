"""initial schema with seeded categories

Revision ID: 202610180900
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202610180900"
down_revision = None
branch_labels = None
depends_on = None


DEFAULT_CATEGORIES = [
    (1, "Food", "ఆహారం", "भोजन"),
    (2, "Groceries", "కిరాణా", "किराना"),
    (3, "Transport", "రవాణా", "परिवहन"),
    (4, "Bills & Utilities", "బిల్లులు", "बिल"),
    (5, "Health", "ఆరోగ్యం", "स्वास्थ्य"),
    (6, "Education", "విద్య", "शिक्षा"),
    (7, "Shopping", "షాపింగ్", "खरीदारी"),
    (8, "Entertainment", "వినోదం", "मनोरंजन"),
    (9, "Agriculture", "వ్యవసాయం", "कृषि"),
    (10, "Other", "ఇతర", "अन्य"),
]


def upgrade() -> None:
    categories = op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name_en", sa.String(length=100), nullable=False),
        sa.Column("name_te", sa.String(length=100), nullable=True),
        sa.Column("name_hi", sa.String(length=100), nullable=True),
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "payment_mode",
            sa.Enum("cash", "upi", "credit", "other", name="paymentmode"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("ix_expenses_user_date", "expenses", ["user_id", "date"])
    op.create_index(
        "ix_expenses_user_category_date",
        "expenses",
        ["user_id", "category_id", "date"],
    )

    # spent/remaining are derived from expenses on read and never stored
    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column(
            "cycle", sa.Enum("monthly", "weekly", name="budgetcycle"), nullable=False
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount_cents >= 0", name="ck_budget_amount_non_negative"),
        sa.CheckConstraint("start_date <= end_date", name="ck_budget_window_ordered"),
    )
    op.create_index(
        "ix_budget_user_window", "budgets", ["user_id", "start_date", "end_date"]
    )

    op.bulk_insert(
        categories,
        [
            {"id": cid, "name_en": en, "name_te": te, "name_hi": hi}
            for cid, en, te, hi in DEFAULT_CATEGORIES
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_budget_user_window", table_name="budgets")
    op.drop_table("budgets")
    op.drop_index("ix_expenses_user_category_date", table_name="expenses")
    op.drop_index("ix_expenses_user_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("categories")
