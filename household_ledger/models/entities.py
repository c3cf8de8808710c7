"""
Household Entity Models

These models mirror the rows of the hosted household tables. Every entity
belongs to exactly one household, and all reads and writes are scoped by
that household's id.

DESIGN DECISION: `id` is optional on every entity. An entity added while
offline is shown immediately but has no server-assigned id until the
queued mutation is replayed.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_CATEGORY_NAMES = ["Groceries", "Utilities", "Entertainment", "Household Items"]


# =============================================================================
# TENANCY
# =============================================================================

class Household(BaseModel):
    """The sharing boundary: all entities are scoped to one household."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=2, max_length=100)
    created_at: Optional[datetime] = None


class Member(BaseModel):
    """A user who belongs to a household."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    email: str
    name: str
    household_id: Optional[str] = None


# =============================================================================
# ENTITIES
# =============================================================================

class HouseholdEntity(BaseModel):
    """Fields shared by every household-scoped row."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: Optional[str] = Field(
        default=None,
        description="Server-assigned id (None for an unsynced offline add)"
    )
    household_id: str = Field(
        ...,
        min_length=1,
        description="Owning household"
    )

    def to_payload(self) -> dict:
        """Row payload for the remote store (JSON-safe, no empty fields)."""
        return self.model_dump(mode="json", exclude_none=True)


class Expense(HouseholdEntity):
    date: date
    item_name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    category_id: str
    notes: Optional[str] = None
    is_recurring: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    shopping_list_id: Optional[str] = None
    is_purchased: Optional[bool] = None


class Category(HouseholdEntity):
    name: str = Field(..., min_length=1, max_length=50)
    type: Literal["default", "custom"] = "custom"
    color: Optional[str] = None
    icon: Optional[str] = None


class Budget(HouseholdEntity):
    category_id: str
    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Budget month as YYYY-MM"
    )
    limit_amount: Decimal = Field(..., ge=0)


class RecurringPayment(HouseholdEntity):
    amount: Decimal = Field(..., ge=0)
    category_id: str
    description: str = Field(..., min_length=1)
    frequency: Literal["monthly", "weekly", "custom"] = "monthly"
    next_due: date
    status: Literal["active", "paused", "cancelled"] = "active"
    last_logged: Optional[date] = None


class ShoppingListItem(HouseholdEntity):
    item_name: str = Field(..., min_length=1, max_length=200)
    category_id: Optional[str] = None
    added_by: Optional[str] = None
    is_purchased: bool = False
    purchased_at: Optional[datetime] = None


class Todo(HouseholdEntity):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    completed: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    due_date: Optional[date] = None
    priority: Literal["low", "medium", "high"] = "medium"

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Todo title is required")
        return v


class Reminder(HouseholdEntity):
    """A dated calendar reminder shared with the household."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    date: date
    time: Optional[str] = Field(
        default=None,
        pattern=r"^\d{2}:\d{2}(:\d{2})?$",
        description="Time of day as HH:MM"
    )
    created_by: Optional[str] = None
    is_completed: bool = False
    created_at: Optional[datetime] = None


class ShoppingList(HouseholdEntity):
    """A named list that shopping items and expenses can be filed under."""
    name: str = Field(..., min_length=1, max_length=100)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# ENTITY TYPES)
# =============================================================================

@dataclass(frozen=True)
class EntityMeta:
    """Storage metadata for one entity type."""
    table: str
    mirror_prefix: str
    mutation_prefix: str
    order_by: str
    descending: bool
    model: type[HouseholdEntity]
    then_by: Optional[str] = None


class EntityType(str, Enum):
    """
    Entity collections that can be cached and edited offline.

    Each type has its own mirror snapshot and its own pending mutation
    log per household; there is no ordering across types.
    """
    EXPENSES = "expenses"
    CATEGORIES = "categories"
    BUDGETS = "budgets"
    RECURRING_PAYMENTS = "recurring_payments"
    SHOPPING_ITEMS = "shopping_items"
    TODOS = "todos"
    REMINDERS = "reminders"
    SHOPPING_LISTS = "shopping_lists"

    @property
    def meta(self) -> EntityMeta:
        return _ENTITY_META[self]

    @property
    def table(self) -> str:
        return self.meta.table

    @property
    def model(self) -> type[HouseholdEntity]:
        return self.meta.model

    def mirror_key(self, household_id: str) -> str:
        """Durable key of the last known-good snapshot, e.g. `categories_<id>`."""
        return f"{self.meta.mirror_prefix}_{household_id}"

    def mutations_key(self, household_id: str) -> str:
        """Durable key of the pending mutation log, e.g. `category_mutations_<id>`."""
        return f"{self.meta.mutation_prefix}_mutations_{household_id}"

    def sort_rows(self, rows: list[dict]) -> list[dict]:
        """Order rows the way the hosted select returns them."""
        field = self.meta.order_by
        # Rows missing the sort field go last regardless of direction
        present = [r for r in rows if r.get(field) is not None]
        missing = [r for r in rows if r.get(field) is None]
        then_by = self.meta.then_by
        present.sort(
            key=lambda r: (str(r[field]), str(r.get(then_by) or "") if then_by else ""),
            reverse=self.meta.descending,
        )
        return present + missing


_ENTITY_META: dict[EntityType, EntityMeta] = {
    EntityType.EXPENSES: EntityMeta(
        "expenses", "expenses", "expense", "date", True, Expense),
    EntityType.CATEGORIES: EntityMeta(
        "categories", "categories", "category", "name", False, Category),
    EntityType.BUDGETS: EntityMeta(
        "budgets", "budgets", "budget", "month", True, Budget),
    EntityType.RECURRING_PAYMENTS: EntityMeta(
        "recurring_payments", "recurring", "recurring", "next_due", False, RecurringPayment),
    EntityType.SHOPPING_ITEMS: EntityMeta(
        "shopping_list", "shopping", "shopping", "added_by", False, ShoppingListItem),
    EntityType.TODOS: EntityMeta(
        "todos", "todos", "todo", "created_at", True, Todo),
    EntityType.REMINDERS: EntityMeta(
        "reminders", "reminders", "reminder", "date", False, Reminder, then_by="time"),
    EntityType.SHOPPING_LISTS: EntityMeta(
        "shopping_lists", "shopping_lists", "shopping_list", "created_at", False, ShoppingList),
}


def current_month(today: Optional[date] = None) -> str:
    """Budget month string (YYYY-MM) for today or the given date."""
    today = today or date.today()
    return f"{today.year}-{today.month:02d}"
