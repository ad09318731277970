import csv
import re
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Sequence

from errors import ValidationError
from models import MAX_AMOUNT_CENTS, Expense, Locale

MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / 100


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def parse_amount(value: str, *, allow_zero: bool = False) -> int:
    """Parse a user-entered amount like ``"1,250.50"`` or ``"₹99"`` into paise/cents.

    Commas are digit-group separators (``"1,00,000"`` and ``"100,000"`` both
    read as one lakh); the only decimal mark is ``.``.
    """
    clean = value.strip().replace("₹", "").replace("$", "").replace(" ", "")
    clean = clean.replace(",", "")
    try:
        amount = Decimal(clean)
        if not amount.is_finite():
            raise ValidationError("Invalid amount")
        if amount < 0:
            raise ValidationError("Amount must be positive")
        if amount > MAX_AMOUNT:
            raise ValidationError("Amount too large")
        cents = int((amount * 100).quantize(Decimal("1")))
    except InvalidOperation as exc:
        raise ValidationError("Invalid amount") from exc
    if cents == 0 and not allow_zero:
        raise ValidationError("Amount must be positive")
    return cents


def format_amount(cents: int) -> str:
    return f"{Decimal(cents) / 100:.2f}"


def export_expenses(expenses: Sequence[Expense], locale: Locale) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Amount", "Category", "PaymentMode", "Notes", "Location"])
    for expense in expenses:
        writer.writerow(
            [
                expense.date.isoformat(),
                format_amount(expense.amount_cents),
                sanitize_csv_value(
                    expense.category.display_name(locale) if expense.category else ""
                ),
                expense.payment_mode.value,
                sanitize_csv_value(expense.notes or ""),
                sanitize_csv_value(expense.location or ""),
            ]
        )
    return output.getvalue()
