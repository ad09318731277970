import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from sqlalchemy.orm import Session

from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from csv_utils import export_expenses, format_amount, parse_amount
from database import SessionLocal
from errors import NotFoundError, StoreUnavailableError, ValidationError
from i18n import Translator, coerce_locale, get_locale, set_locale, table_for
from models import Budget, BudgetCycle, Expense, Locale, PaymentMode
from periods import Period, resolve_period
from schemas import BudgetIn, ExpenseIn, ExpensePatch
from services import (
    BudgetService,
    BudgetStatus,
    CategoryService,
    DashboardService,
    ExpenseService,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Spendwise")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(request: Request) -> str:
    settings = get_settings()
    value = request.headers.get(settings.user_header)
    if value is None:
        return settings.default_user
    value = value.strip()
    if not value:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return value


def get_translator(request: Request) -> Translator:
    return Translator(get_locale(request.cookies))


def period_from_request(request: Request) -> Period:
    try:
        return resolve_period(
            request.query_params.get("period"),
            request.query_params.get("start"),
            request.query_params.get("end"),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@contextmanager
def http_errors() -> Iterator[None]:
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def checked_form(request: Request, user_id: str):
    form = await request.form()
    token = form.get("csrf_token") or request.headers.get("X-CSRF-Token", "")
    if not validate_csrf_token(str(token), user_id):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    return form


def _optional_text(form, field: str) -> Optional[str]:
    value = form.get(field)
    return str(value) if value is not None else None


def _parse_date(raw: Optional[str]) -> date:
    if not raw:
        raise ValidationError("Date is required")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError("Invalid date") from exc


def _parse_category(raw: Optional[str]) -> Optional[int]:
    if not raw or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError("Invalid category") from exc


def _parse_payment_mode(raw: Optional[str]) -> PaymentMode:
    try:
        return PaymentMode(raw or PaymentMode.cash.value)
    except ValueError as exc:
        raise ValidationError("Unknown payment mode") from exc


def expense_payload(expense: Expense, t: Translator) -> dict[str, object]:
    return {
        "id": expense.id,
        "date": expense.date.isoformat(),
        "amount_cents": expense.amount_cents,
        "amount": format_amount(expense.amount_cents),
        "category_id": expense.category_id,
        "category": expense.category.display_name(t.locale)
        if expense.category
        else None,
        "payment_mode": expense.payment_mode.value,
        "payment_mode_label": t(expense.payment_mode.value),
        "notes": expense.notes,
        "location": expense.location,
    }


def budget_payload(budget: Budget, t: Translator) -> dict[str, object]:
    return {
        "id": budget.id,
        "cycle": budget.cycle.value,
        "cycle_label": t(budget.cycle.value),
        "amount_cents": budget.amount_cents,
        "start_date": budget.start_date.isoformat(),
        "end_date": budget.end_date.isoformat(),
    }


def status_payload(status: BudgetStatus, t: Translator) -> dict[str, object]:
    payload = budget_payload(status.budget, t)
    payload.update(
        {
            "spent_cents": status.spent_cents,
            "remaining_cents": status.remaining_cents,
            "percent_used": status.percent_used,
            "level": status.level.value,
            "message": t(status.level.message_key),
        }
    )
    return payload


@app.get("/api/i18n")
def api_i18n(t: Translator = Depends(get_translator)):
    return {
        "locale": t.locale.value,
        "locales": [locale.value for locale in Locale],
        "strings": table_for(t.locale),
    }


@app.post("/api/locale")
async def api_set_locale(
    request: Request, user_id: str = Depends(get_current_user_id)
):
    form = await checked_form(request, user_id)
    raw = str(form.get("locale") or "")
    if raw not in {locale.value for locale in Locale}:
        raise HTTPException(status_code=400, detail="Unsupported locale")
    locale = coerce_locale(raw)
    response = JSONResponse({"locale": locale.value})
    set_locale(response, locale)
    logger.info(f"locale_changed: locale={locale.value}")
    return response


@app.get("/api/csrf-token")
def api_csrf_token(user_id: str = Depends(get_current_user_id)):
    return {"csrf_token": generate_csrf_token(user_id)}


@app.get("/api/categories")
def api_categories(
    db: Session = Depends(get_db), t: Translator = Depends(get_translator)
):
    return [
        {"id": category.id, "name": category.display_name(t.locale)}
        for category in CategoryService(db).list_all()
    ]


@app.get("/api/expenses")
def api_expenses(
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    service = ExpenseService(db, user_id)
    with http_errors():
        if request.query_params.get("period"):
            period = period_from_request(request)
            expenses = service.list_for_range(period.start, period.end)
        else:
            expenses = service.list_all()
    return {"items": [expense_payload(e, t) for e in expenses]}


@app.get("/api/expenses/export.csv")
def api_export_expenses(
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    period = period_from_request(request)
    with http_errors():
        expenses = ExpenseService(db, user_id).list_for_range(period.start, period.end)
    csv_text = export_expenses(expenses, t.locale)
    filename = f"expenses_{period.start}_{period.end}.csv"
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/expenses/{expense_id}")
def api_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    with http_errors():
        expense = ExpenseService(db, user_id).get(expense_id)
    return expense_payload(expense, t)


@app.post("/api/expenses", status_code=201)
async def api_create_expense(
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    form = await checked_form(request, user_id)
    with http_errors():
        data = ExpenseIn(
            amount_cents=parse_amount(str(form.get("amount") or "")),
            category_id=_parse_category(_optional_text(form, "category_id")),
            date=_parse_date(_optional_text(form, "date")),
            payment_mode=_parse_payment_mode(_optional_text(form, "payment_mode")),
            notes=_optional_text(form, "notes"),
            location=_optional_text(form, "location"),
        )
        expense = ExpenseService(db, user_id).create(data)
    return expense_payload(expense, t)


@app.post("/api/expenses/{expense_id}")
async def api_update_expense(
    expense_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    form = await checked_form(request, user_id)
    with http_errors():
        changes: dict[str, object] = {}
        if "amount" in form:
            changes["amount_cents"] = parse_amount(str(form["amount"]))
        if "category_id" in form:
            changes["category_id"] = _parse_category(str(form["category_id"]))
        if "date" in form:
            changes["date"] = _parse_date(str(form["date"]))
        if "payment_mode" in form:
            changes["payment_mode"] = _parse_payment_mode(str(form["payment_mode"]))
        for field in ("notes", "location"):
            if field in form:
                changes[field] = str(form[field])
        expense = ExpenseService(db, user_id).update(expense_id, ExpensePatch(**changes))
    return expense_payload(expense, t)


@app.post("/api/expenses/{expense_id}/delete")
async def api_delete_expense(
    expense_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    await checked_form(request, user_id)
    with http_errors():
        ExpenseService(db, user_id).delete(expense_id)
    return Response(status_code=204)


@app.get("/api/budget")
def api_budget(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    with http_errors():
        status = BudgetService(db, user_id).current_status()
    if status is None:
        return {"active": False, "message": t("noActiveBudget")}
    return {"active": True, **status_payload(status, t)}


@app.post("/api/budget", status_code=201)
async def api_establish_budget(
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    form = await checked_form(request, user_id)
    with http_errors():
        try:
            cycle = BudgetCycle(str(form.get("cycle") or BudgetCycle.monthly.value))
        except ValueError as exc:
            raise ValidationError("Unknown budget cycle") from exc
        # a zero budget is accepted and reads as exceeded right away
        amount_cents = parse_amount(str(form.get("amount") or ""), allow_zero=True)
        budget = BudgetService(db, user_id).establish(
            BudgetIn(amount_cents=amount_cents, cycle=cycle)
        )
    return budget_payload(budget, t)


@app.get("/api/budgets")
def api_budgets(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    with http_errors():
        budgets = BudgetService(db, user_id).history()
    return {"items": [budget_payload(b, t) for b in budgets]}


@app.get("/api/dashboard")
def api_dashboard(
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    t: Translator = Depends(get_translator),
):
    period = period_from_request(request)
    with http_errors():
        summary = DashboardService(db, user_id).summarize(
            period.start, period.end, locale=t.locale
        )
    status = summary.budget_status
    return {
        "period": {
            "slug": period.slug,
            "start": period.start.isoformat(),
            "end": period.end.isoformat(),
        },
        "total_spent_cents": summary.total_spent_cents,
        "remaining_budget_cents": summary.remaining_budget_cents,
        "budget": status_payload(status, t) if status else None,
        "top_category": summary.top_category,
        "category_breakdown": [
            {
                "category_id": row.category_id,
                "name": row.name,
                "amount_cents": row.amount_cents,
                "percent": row.percent,
            }
            for row in summary.breakdown
        ],
        "chart": [
            {"name": row.name, "value": row.amount_cents}
            for row in summary.chart_breakdown
        ],
        "recent_expenses": [expense_payload(e, t) for e in summary.recent_expenses],
        "labels": {
            key: t(key)
            for key in (
                "totalSpent",
                "remainingBudget",
                "topCategory",
                "recentExpenses",
                "categoryBreakdown",
                "monthlyOverview",
            )
        },
    }


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
