"""
Client-Side Input Validation

Validation runs BEFORE a write is dispatched. An invalid value is reported
inline and the write is neither sent nor queued.

IMPORTANT: Validation NEVER silently fixes input. It only strips the
surrounding whitespace the form would strip anyway.
"""

import re
from datetime import date
from typing import Optional, Union

from pydantic import BaseModel

from household_ledger.models.entities import EntityType


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")

Number = Union[int, float, str, None]


class FieldCheck(BaseModel):
    """Result of checking one field."""

    is_valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> 'FieldCheck':
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: str) -> 'FieldCheck':
        return cls(is_valid=False, error=error)


def _to_number(value: Number) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def _length_check(
    value: Optional[str],
    label: str,
    min_length: int,
    max_length: Optional[int] = None,
) -> FieldCheck:
    text = (value or "").strip()
    if not text:
        return FieldCheck.fail(f"{label} is required")
    if len(text) < min_length:
        return FieldCheck.fail(f"{label} must be at least {min_length} characters")
    if max_length is not None and len(text) > max_length:
        return FieldCheck.fail(f"{label} must be less than {max_length} characters")
    return FieldCheck.ok()


def validate_email(email: Optional[str]) -> FieldCheck:
    if not (email or "").strip():
        return FieldCheck.fail("Email is required")
    if not EMAIL_PATTERN.match(email):
        return FieldCheck.fail("Invalid email format")
    return FieldCheck.ok()


def validate_password(password: Optional[str]) -> FieldCheck:
    if not password:
        return FieldCheck.fail("Password is required")
    if len(password) < 6:
        return FieldCheck.fail("Password must be at least 6 characters")
    return FieldCheck.ok()


def validate_name(name: Optional[str]) -> FieldCheck:
    return _length_check(name, "Name", 2)


def validate_category_name(name: Optional[str]) -> FieldCheck:
    return _length_check(name, "Category name", 2, 50)


def validate_item_name(name: Optional[str]) -> FieldCheck:
    return _length_check(name, "Item name", 1, 200)


def validate_title(title: Optional[str]) -> FieldCheck:
    return _length_check(title, "Title", 1, 200)


def validate_household_name(name: Optional[str]) -> FieldCheck:
    return _length_check(name, "Household name", 2, 100)


def validate_list_name(name: Optional[str]) -> FieldCheck:
    return _length_check(name, "List name", 1, 100)


def validate_amount(amount: Number) -> FieldCheck:
    number = _to_number(amount)
    if number is None:
        return FieldCheck.fail("Amount must be a number")
    if number < 0:
        return FieldCheck.fail("Amount cannot be negative")
    return FieldCheck.ok()


def validate_budget_limit(limit: Number) -> FieldCheck:
    number = _to_number(limit)
    if number is None or number < 0:
        return FieldCheck.fail("Limit must be a non-negative number")
    return FieldCheck.ok()


def validate_date(value: Union[str, date, None]) -> FieldCheck:
    if not value:
        return FieldCheck.fail("Date is required")
    if isinstance(value, date):
        return FieldCheck.ok()
    try:
        date.fromisoformat(str(value)[:10])
    except ValueError:
        return FieldCheck.fail("Invalid date format")
    return FieldCheck.ok()


def validate_time(value: Optional[str]) -> FieldCheck:
    """Time of day is optional; when given it must be HH:MM."""
    if not value:
        return FieldCheck.ok()
    if not TIME_PATTERN.match(str(value)):
        return FieldCheck.fail("Invalid time format")
    return FieldCheck.ok()


# Field checks applied to a write payload, per entity type.
# Only fields present in the payload are checked, so partial updates work.
PAYLOAD_CHECKS = {
    EntityType.EXPENSES: {
        "item_name": validate_item_name,
        "amount": validate_amount,
        "date": validate_date,
    },
    EntityType.CATEGORIES: {
        "name": validate_category_name,
    },
    EntityType.BUDGETS: {
        "limit_amount": validate_budget_limit,
    },
    EntityType.RECURRING_PAYMENTS: {
        "amount": validate_amount,
        "next_due": validate_date,
    },
    EntityType.SHOPPING_ITEMS: {
        "item_name": validate_item_name,
    },
    EntityType.TODOS: {
        "title": validate_title,
    },
    EntityType.REMINDERS: {
        "title": validate_title,
        "date": validate_date,
        "time": validate_time,
    },
    EntityType.SHOPPING_LISTS: {
        "name": validate_list_name,
    },
}


def validate_payload(entity_type: EntityType, payload: dict) -> list[str]:
    """
    Check every known field of a write payload.

    Returns:
        Error messages, empty if the payload is acceptable
    """
    errors = []
    for field, check in PAYLOAD_CHECKS.get(entity_type, {}).items():
        if field not in payload:
            continue
        result = check(payload[field])
        if not result.is_valid:
            errors.append(result.error)
    return errors
