import datetime as dt
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import BudgetCycle, PaymentMode


class ExpenseIn(BaseModel):
    # amount and category are checked by ExpenseService so that every
    # rejection surfaces as the same ValidationError
    amount_cents: int
    category_id: Optional[int] = None
    date: date
    payment_mode: PaymentMode = PaymentMode.cash
    notes: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=200)


class ExpensePatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount_cents: Optional[int] = None
    category_id: Optional[int] = None
    date: Optional[dt.date] = None
    payment_mode: Optional[PaymentMode] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=200)


class BudgetIn(BaseModel):
    amount_cents: int
    cycle: BudgetCycle = BudgetCycle.monthly
