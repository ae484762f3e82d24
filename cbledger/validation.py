from decimal import Decimal, InvalidOperation

from cbledger.config import MAX_AMOUNT_EXPONENT, MAX_YEAR
from cbledger.errors import ValidationError


def require_year(value) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"YEAR_INVALID: '{value}' is not a year.")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdecimal():
            raise ValidationError(f"YEAR_INVALID: '{value}' must be a valid positive number.")
        try:
            value = int(value)
        except ValueError:
            raise ValidationError(f"YEAR_INVALID: '{value}' must be a valid positive number.") from None
    if not isinstance(value, int):
        raise ValidationError(f"YEAR_INVALID: '{value}' must be an integer.")
    if value <= 0:
        raise ValidationError(f"YEAR_INVALID: {value} must be a valid positive number.")
    if value > MAX_YEAR:
        raise ValidationError(f"YEAR_INVALID: {value} is beyond {MAX_YEAR}.")
    return value


def to_decimal(value, field_name="amount") -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"FORMAT_ERROR: {field_name} '{value}' is not a valid decimal.")
    if isinstance(value, str) and "," in value:
        raise ValidationError(f"LOCALE_ERROR: {field_name} '{value}' contains a comma. Use dot format (1234.56).")
    try:
        d_val = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"FORMAT_ERROR: {field_name} '{value}' is not a valid decimal.") from None
    if not d_val.is_finite():
        raise ValidationError(f"FORMAT_ERROR: {field_name} '{value}' must be finite.")
    if d_val != 0 and d_val.adjusted() > MAX_AMOUNT_EXPONENT:
        raise ValidationError(f"RANGE_ERROR: {field_name} '{value}' is out of range.")
    return d_val


def require_positive_amount(value) -> Decimal:
    amount = to_decimal(value, "amount")
    if amount <= 0:
        raise ValidationError(f"AMOUNT_INVALID: amount must be a valid positive number, got {amount}.")
    return amount


def require_ship_id(value) -> str:
    if not isinstance(value, str) or value.strip() == "":
        raise ValidationError("SHIP_ID_INVALID: shipId is required and must be a non-empty string.")
    return value.strip()
