from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class Locale(str, Enum):
    en = "en"
    te = "te"
    hi = "hi"


DEFAULT_LOCALE = Locale.en

# Keeps any per-user sum well inside a signed 64-bit SQLite INTEGER.
MAX_AMOUNT_CENTS = 10**15


class PaymentMode(str, Enum):
    cash = "cash"
    upi = "upi"
    credit = "credit"
    other = "other"


class BudgetCycle(str, Enum):
    monthly = "monthly"
    weekly = "weekly"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name_en: Mapped[str] = mapped_column(String(100), nullable=False)
    name_te: Mapped[Optional[str]] = mapped_column(String(100))
    name_hi: Mapped[Optional[str]] = mapped_column(String(100))

    expenses: Mapped[list["Expense"]] = relationship(
        "Expense", back_populates="category"
    )

    def display_name(self, locale: Locale) -> str:
        column = CATEGORY_NAME_COLUMNS.get(locale, "name_en")
        return getattr(self, column) or self.name_en


# Every supported locale must have a column here; checked in tests.
CATEGORY_NAME_COLUMNS: dict[Locale, str] = {
    Locale.en: "name_en",
    Locale.te: "name_te",
    Locale.hi: "name_hi",
}


class Expense(Base, TimestampMixin):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_mode: Mapped[PaymentMode] = mapped_column(
        SAEnum(PaymentMode), nullable=False, default=PaymentMode.cash
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(200))

    category: Mapped["Category"] = relationship("Category", back_populates="expenses")

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_category_date", "user_id", "category_id", "date"),
        CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    cycle: Mapped[BudgetCycle] = mapped_column(SAEnum(BudgetCycle), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_budget_amount_non_negative"),
        CheckConstraint("start_date <= end_date", name="ck_budget_window_ordered"),
        Index("ix_budget_user_window", "user_id", "start_date", "end_date"),
    )
