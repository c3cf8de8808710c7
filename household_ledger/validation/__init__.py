"""Input validation package."""

from household_ledger.validation.validator import (
    FieldCheck,
    validate_amount,
    validate_budget_limit,
    validate_category_name,
    validate_date,
    validate_email,
    validate_household_name,
    validate_item_name,
    validate_list_name,
    validate_name,
    validate_password,
    validate_payload,
    validate_time,
    validate_title,
)

__all__ = [
    "FieldCheck",
    "validate_amount",
    "validate_budget_limit",
    "validate_category_name",
    "validate_date",
    "validate_email",
    "validate_household_name",
    "validate_item_name",
    "validate_list_name",
    "validate_name",
    "validate_password",
    "validate_payload",
    "validate_time",
    "validate_title",
]
