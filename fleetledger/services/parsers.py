"""Input parsing utilities for billing requests.

Dates arrive as ISO strings ("YYYY-MM-DD") or date objects; money arrives as
strings, ints or Decimals. Float input is converted through str() so that 0.1
stays 0.1.

Example:
    >>> parse_iso_date("2024-02-29")
    datetime.date(2024, 2, 29)

    >>> parse_decimal("1071.43")
    Decimal('1071.43')
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from fleetledger.services.errors import InvalidInputError


def parse_iso_date(value: date | str | None, field: str = "date") -> date:
    """Parse an ISO date string (or pass a date through).

    Args:
        value: "YYYY-MM-DD" string, date or datetime
        field: Field name used in the error message

    Returns:
        datetime.date object

    Raises:
        InvalidInputError: If value is empty or not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise InvalidInputError(f"Invalid {field} provided")

    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidInputError(f"Invalid {field} provided") from e


def parse_date_range(start: date | str | None, end: date | str | None) -> tuple[date, date]:
    """Parse a start/end pair and require end >= start.

    Raises:
        InvalidInputError: "Invalid start or end date provided" or
            "End date must be on or after the start date"
    """
    try:
        start_date = parse_iso_date(start)
        end_date = parse_iso_date(end)
    except InvalidInputError as e:
        raise InvalidInputError("Invalid start or end date provided") from e

    if end_date < start_date:
        raise InvalidInputError("End date must be on or after the start date")
    return start_date, end_date


def parse_decimal(value: Decimal | int | float | str | None, field: str = "amount") -> Decimal:
    """Parse a monetary value to Decimal.

    Args:
        value: Decimal, int, float or numeric string
        field: Field name used in the error message

    Returns:
        Decimal value

    Raises:
        InvalidInputError: If value is missing or not numeric
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"Invalid {field} provided")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (ValueError, InvalidOperation) as e:
            raise InvalidInputError(f"Invalid {field} provided") from e

    if not result.is_finite():
        raise InvalidInputError(f"Invalid {field} provided")
    return result


__all__ = ["parse_iso_date", "parse_date_range", "parse_decimal"]
