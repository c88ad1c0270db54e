'''
Validation of money values and reporting date ranges.
'''
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from ..common.exceptions import InvalidAmount, InvalidFee

# Amounts are stored as NUMERIC(12, 2)
CENTS = Decimal("0.01")

def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Converts an int/float/str/Decimal to a finite Decimal rounded to cents.
    Returns None for anything that is not a finite number (NaN, inf, garbage, bools).
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    try:
        return number.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # too many digits to represent in cents
        return None

def require_positive_amount(value: Any) -> Decimal:
    """Returns the amount as a Decimal, or raises InvalidAmount unless it is finite and > 0."""
    amount = to_decimal(value)
    if amount is None or amount <= 0:
        raise InvalidAmount("Amount must be a finite number greater than zero.", details={"amount": str(value)})
    return amount

def require_valid_fee(value: Any) -> Decimal:
    """Returns the fee as a Decimal, or raises InvalidFee unless it is finite and >= 0."""
    fee = to_decimal(value)
    if fee is None or fee < 0:
        raise InvalidFee("Per-student fee must be a finite number of zero or more.", details={"fee": str(value)})
    return fee

def coerce_fee(value: Any) -> Decimal:
    """Onboarding variant: an unusable fee silently becomes zero."""
    fee = to_decimal(value)
    if fee is None or fee < 0:
        return Decimal(0)
    return fee

def normalize_date_range(
    date_from: date | datetime | None,
    date_to: date | datetime | None
) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Turns an inclusive reporting range into datetime bounds.
    - a bare `date_from` means the start of that day
    - `date_to` always covers its whole day (23:59:59.999999)
    """
    start = None
    end = None
    if date_from is not None:
        if isinstance(date_from, datetime):
            start = date_from
        else:
            start = datetime.combine(date_from, time.min)
    if date_to is not None:
        end = datetime.combine(
            date_to.date() if isinstance(date_to, datetime) else date_to,
            time.max,
            tzinfo=date_to.tzinfo if isinstance(date_to, datetime) else None
        )
    return start, end
