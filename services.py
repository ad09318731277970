from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterator, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, joinedload

from errors import (
    ActiveBudgetExistsError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from models import (
    DEFAULT_LOCALE,
    MAX_AMOUNT_CENTS,
    Budget,
    Category,
    Expense,
    Locale,
)
from periods import budget_window, local_today
from schemas import BudgetIn, ExpenseIn, ExpensePatch

logger = logging.getLogger(__name__)

TOP_CATEGORY_NONE = "-"
RECENT_EXPENSES_LIMIT = 5
CHART_CATEGORIES_LIMIT = 5

CAUTION_RATIO = Decimal("0.5")
CRITICAL_RATIO = Decimal("0.8")
EXCEEDED_RATIO = Decimal("1")


@contextmanager
def store_guard(session: Session, action: str) -> Iterator[None]:
    try:
        yield
    except OperationalError as exc:
        session.rollback()
        logger.error(f"store_unavailable: action={action} error={exc.orig}")
        raise StoreUnavailableError(f"Could not {action}: store unavailable") from exc


class WarningLevel(str, Enum):
    on_track = "on_track"
    caution = "caution"
    critical = "critical"
    exceeded = "exceeded"

    @property
    def message_key(self) -> str:
        return {
            WarningLevel.on_track: "budgetOnTrack",
            WarningLevel.caution: "budgetCaution",
            WarningLevel.critical: "budgetCritical",
            WarningLevel.exceeded: "budgetExceeded",
        }[self]


Number = Union[int, Decimal]


def spend_ratio(spent: Number, amount: Number) -> Decimal:
    if amount == 0:
        return Decimal("Infinity")
    return Decimal(spent) / Decimal(amount)


def classify_spend(spent: Number, amount: Number) -> WarningLevel:
    ratio = spend_ratio(spent, amount)
    if ratio >= EXCEEDED_RATIO:
        return WarningLevel.exceeded
    if ratio >= CRITICAL_RATIO:
        return WarningLevel.critical
    if ratio >= CAUTION_RATIO:
        return WarningLevel.caution
    return WarningLevel.on_track


class CategoryService:
    """Read-only access to the seeded categories."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Category]:
        # An empty list means "nothing loaded"; callers must not read it as
        # "no categories exist".
        try:
            return list(self.session.scalars(select(Category).order_by(Category.id)))
        except DBAPIError as exc:
            self.session.rollback()
            logger.warning(f"categories_unavailable: error={exc.orig}")
            return []

    def get(self, category_id: int) -> Optional[Category]:
        with store_guard(self.session, "load category"):
            return self.session.get(Category, category_id)


class ExpenseService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    @staticmethod
    def _check_amount(amount_cents: Optional[int]) -> None:
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Amount must be positive")
        if amount_cents > MAX_AMOUNT_CENTS:
            raise ValidationError("Amount too large")

    def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is None:
            raise ValidationError("Category is required")
        if CategoryService(self.session).get(category_id) is None:
            raise ValidationError("Category not found")

    def create(self, data: ExpenseIn) -> Expense:
        self._check_amount(data.amount_cents)
        self._check_category(data.category_id)
        expense = Expense(
            user_id=self.user_id,
            amount_cents=data.amount_cents,
            category_id=data.category_id,
            date=data.date,
            payment_mode=data.payment_mode,
            notes=(data.notes or "").strip() or None,
            location=(data.location or "").strip() or None,
        )
        with store_guard(self.session, "create expense"):
            self.session.add(expense)
            self.session.commit()
            self.session.refresh(expense)
        logger.info(
            f"expense_created: user={self.user_id} id={expense.id} "
            f"amount_cents={expense.amount_cents} date={expense.date}"
        )
        return expense

    def get(self, expense_id: int) -> Expense:
        stmt = (
            select(Expense)
            .options(joinedload(Expense.category))
            .where(Expense.user_id == self.user_id, Expense.id == expense_id)
        )
        with store_guard(self.session, "load expense"):
            expense = self.session.scalar(stmt)
        if not expense:
            raise NotFoundError("Expense not found")
        return expense

    def update(self, expense_id: int, patch: ExpensePatch) -> Expense:
        expense = self.get(expense_id)
        changes = patch.model_dump(exclude_unset=True)
        if "amount_cents" in changes:
            self._check_amount(changes["amount_cents"])
        if "category_id" in changes:
            self._check_category(changes["category_id"])
        if "date" in changes and changes["date"] is None:
            raise ValidationError("Date is required")
        if "payment_mode" in changes and changes["payment_mode"] is None:
            raise ValidationError("Payment mode is required")
        for field in ("notes", "location"):
            if field in changes:
                changes[field] = (changes[field] or "").strip() or None

        for field, value in changes.items():
            setattr(expense, field, value)
        with store_guard(self.session, "update expense"):
            self.session.commit()
            self.session.refresh(expense)
        logger.info(
            f"expense_updated: user={self.user_id} id={expense.id} "
            f"fields={','.join(sorted(changes))}"
        )
        return expense

    def delete(self, expense_id: int) -> None:
        expense = self.get(expense_id)
        with store_guard(self.session, "delete expense"):
            self.session.delete(expense)
            self.session.commit()
        logger.info(f"expense_deleted: user={self.user_id} id={expense_id}")

    def list_for_range(
        self, start: date, end: date, *, descending: bool = True
    ) -> list[Expense]:
        """Expenses dated within ``[start, end]`` (both inclusive).

        Same-day expenses keep the order they were recorded in.
        """
        date_order = Expense.date.desc() if descending else Expense.date.asc()
        stmt = (
            select(Expense)
            .options(joinedload(Expense.category))
            .where(
                Expense.user_id == self.user_id,
                Expense.date.between(start, end),
            )
            .order_by(date_order, Expense.id.asc())
        )
        with store_guard(self.session, "list expenses"):
            return list(self.session.scalars(stmt))

    def list_all(self) -> list[Expense]:
        stmt = (
            select(Expense)
            .options(joinedload(Expense.category))
            .where(Expense.user_id == self.user_id)
            .order_by(Expense.date.desc(), Expense.id.asc())
        )
        with store_guard(self.session, "list expenses"):
            return list(self.session.scalars(stmt))

    def sum_for_range(self, start: date, end: date) -> int:
        stmt = select(func.coalesce(func.sum(Expense.amount_cents), 0)).where(
            Expense.user_id == self.user_id,
            Expense.date.between(start, end),
        )
        with store_guard(self.session, "sum expenses"):
            return int(self.session.execute(stmt).scalar_one() or 0)


@dataclass(frozen=True)
class BudgetStatus:
    budget: Budget
    spent_cents: int
    remaining_cents: int
    ratio: Decimal
    level: WarningLevel

    @property
    def percent_used(self) -> Optional[float]:
        if self.ratio.is_infinite():
            return None
        return float(self.ratio * 100)


class BudgetService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def establish(self, data: BudgetIn, *, today: Optional[date] = None) -> Budget:
        if data.amount_cents < 0:
            raise ValidationError("Budget amount cannot be negative")
        if data.amount_cents > MAX_AMOUNT_CENTS:
            raise ValidationError("Amount too large")
        today = today or local_today()
        if self.active_budget(today) is not None:
            raise ActiveBudgetExistsError("A budget is already active for today")

        start, end = budget_window(today, data.cycle)
        budget = Budget(
            user_id=self.user_id,
            cycle=data.cycle,
            amount_cents=data.amount_cents,
            start_date=start,
            end_date=end,
        )
        with store_guard(self.session, "create budget"):
            self.session.add(budget)
            self.session.commit()
            self.session.refresh(budget)
        logger.info(
            f"budget_established: user={self.user_id} id={budget.id} "
            f"cycle={budget.cycle.value} window={start}..{end}"
        )
        return budget

    def active_budget(self, today: Optional[date] = None) -> Optional[Budget]:
        today = today or local_today()
        # Overlapping windows can exist if two sessions raced; the most
        # recently created one wins.
        stmt = (
            select(Budget)
            .where(
                Budget.user_id == self.user_id,
                Budget.start_date <= today,
                Budget.end_date >= today,
            )
            .order_by(Budget.created_at.desc(), Budget.id.desc())
            .limit(1)
        )
        with store_guard(self.session, "load budget"):
            return self.session.scalar(stmt)

    def status_for(self, budget: Budget) -> BudgetStatus:
        spent = ExpenseService(self.session, self.user_id).sum_for_range(
            budget.start_date, budget.end_date
        )
        return BudgetStatus(
            budget=budget,
            spent_cents=spent,
            remaining_cents=budget.amount_cents - spent,
            ratio=spend_ratio(spent, budget.amount_cents),
            level=classify_spend(spent, budget.amount_cents),
        )

    def current_status(self, today: Optional[date] = None) -> Optional[BudgetStatus]:
        budget = self.active_budget(today)
        if budget is None:
            return None
        return self.status_for(budget)

    def history(self) -> list[Budget]:
        stmt = (
            select(Budget)
            .where(Budget.user_id == self.user_id)
            .order_by(Budget.start_date.desc(), Budget.id.desc())
        )
        with store_guard(self.session, "list budgets"):
            return list(self.session.scalars(stmt))


@dataclass(frozen=True)
class CategoryTotal:
    category_id: int
    name: str
    amount_cents: int
    percent: float


@dataclass(frozen=True)
class DashboardSummary:
    period_start: date
    period_end: date
    total_spent_cents: int
    remaining_budget_cents: int
    budget_status: Optional[BudgetStatus]
    top_category: str
    breakdown: tuple[CategoryTotal, ...]
    recent_expenses: tuple[Expense, ...]

    @property
    def chart_breakdown(self) -> tuple[CategoryTotal, ...]:
        return self.breakdown[:CHART_CATEGORIES_LIMIT]


class DashboardService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def category_breakdown(
        self, expenses: list[Expense], locale: Locale
    ) -> list[CategoryTotal]:
        totals: dict[int, int] = {}
        names: dict[int, str] = {}
        for expense in expenses:
            totals[expense.category_id] = (
                totals.get(expense.category_id, 0) + expense.amount_cents
            )
            if expense.category_id not in names:
                names[expense.category_id] = (
                    expense.category.display_name(locale)
                    if expense.category
                    else str(expense.category_id)
                )

        grand_total = sum(totals.values())
        rows = [
            CategoryTotal(
                category_id=category_id,
                name=names[category_id],
                amount_cents=amount,
                percent=(amount / grand_total * 100) if grand_total else 0,
            )
            for category_id, amount in totals.items()
        ]
        rows.sort(key=lambda r: (-r.amount_cents, r.name, r.category_id))
        return rows

    def summarize(
        self,
        period_start: date,
        period_end: date,
        *,
        locale: Locale = DEFAULT_LOCALE,
        today: Optional[date] = None,
    ) -> DashboardSummary:
        expenses = ExpenseService(self.session, self.user_id).list_for_range(
            period_start, period_end
        )
        status = BudgetService(self.session, self.user_id).current_status(today)
        breakdown = self.category_breakdown(expenses, locale)
        return DashboardSummary(
            period_start=period_start,
            period_end=period_end,
            total_spent_cents=sum(e.amount_cents for e in expenses),
            remaining_budget_cents=status.remaining_cents if status else 0,
            budget_status=status,
            top_category=breakdown[0].name if breakdown else TOP_CATEGORY_NONE,
            breakdown=tuple(breakdown),
            recent_expenses=tuple(expenses[:RECENT_EXPENSES_LIMIT]),
        )
