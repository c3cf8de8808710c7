"""
Entity-Specific Views

Thin subclasses of CollectionView adding each screen's own actions.
All writes still go through the shared dispatch, so they work offline.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from household_ledger.models.entities import (
    DEFAULT_CATEGORY_NAMES,
    Budget,
    Category,
    EntityType,
    Expense,
    RecurringPayment,
    Reminder,
    ShoppingList,
    ShoppingListItem,
    Todo,
    current_month,
)
from household_ledger.models.sync import MutationRecord
from household_ledger.services.entities import EntityService
from household_ledger.services.storage.interface import StorageError
from household_ledger.validation import (
    validate_amount,
    validate_budget_limit,
    validate_category_name,
    validate_list_name,
)
from household_ledger.views.collection import NOT_SYNCED_MESSAGE, CollectionView


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExpenseView(CollectionView[Expense]):
    pass


class CategoryView(CollectionView[Category]):

    async def add_category(self, name: str) -> Optional[Category]:
        check = validate_category_name(name)
        if not check.is_valid:
            self.error = check.error
            return None
        return await self.add({"name": name.strip(), "type": "custom"})

    async def rename(self, category_id: str, name: str) -> Optional[Category]:
        check = validate_category_name(name)
        if not check.is_valid:
            self.error = check.error
            return None
        return await self.update(category_id, {"name": name.strip()})

    async def ensure_defaults(self) -> list[Category]:
        """Seed the default categories for a household that has none."""
        if self.items or not self.is_online:
            return []
        created = []
        for name in DEFAULT_CATEGORY_NAMES:
            category = await self.add({"name": name, "type": "default"})
            if category is not None:
                created.append(category)
        return created


class BudgetView(CollectionView[Budget]):

    def budget_for(self, category_id: str, month: Optional[str] = None) -> Optional[Budget]:
        month = month or current_month()
        for budget in self.items:
            if budget.category_id == category_id and budget.month == month:
                return budget
        return None

    async def set_limit(
        self,
        category_id: str,
        limit: Union[int, float, str, Decimal],
        month: Optional[str] = None,
    ) -> Optional[Budget]:
        """
        Set a category's monthly limit, updating that month's budget or
        creating it.
        """
        check = validate_budget_limit(limit)
        if not check.is_valid:
            self.error = check.error
            return None

        month = month or current_month()
        amount = str(Decimal(str(limit)))
        existing = self.budget_for(category_id, month)
        if existing is not None:
            if existing.id is None:
                self.error = NOT_SYNCED_MESSAGE
                return None
            return await self.update(existing.id, {"limit_amount": amount})
        return await self.add({
            "category_id": category_id,
            "month": month,
            "limit_amount": amount,
        })


class RecurringPaymentView(CollectionView[RecurringPayment]):

    async def set_status(self, payment_id: str, status: str) -> Optional[RecurringPayment]:
        return await self.update(payment_id, {"status": status})


class ShoppingListView(CollectionView[ShoppingListItem]):
    """
    Shopping list with "mark as purchased".

    Online, a purchase with a positive amount is also logged as an
    expense. Offline, only the purchase itself is queued. An amount that
    isn't a number rejects the whole purchase.
    """

    def __init__(self, *args, expenses: Optional[EntityService[Expense]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._expenses = expenses

    async def purchase(
        self,
        item_id: Optional[str],
        amount: Union[int, float, str, None] = None,
        category_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Optional[ShoppingListItem]:
        item = self.get(item_id) if item_id else None
        if item is None or item.id is None:
            self.error = NOT_SYNCED_MESSAGE
            return None
        if amount is not None:
            check = validate_amount(amount)
            if not check.is_valid:
                self.error = check.error
                return None

        mutation = MutationRecord.purchase(item.id, {
            "is_purchased": True,
            "purchased_at": _now_iso(),
        })
        accepted, updated = await self._dispatch(mutation)
        if not accepted or not self.is_online:
            return updated

        if amount is None or self._expenses is None:
            return updated
        if float(amount) <= 0:
            return updated

        fallback_category = category_id or item.category_id
        if not fallback_category:
            return updated
        try:
            await self._expenses.add(Expense(
                household_id=self.household_id,
                date=date.today(),
                item_name=item.item_name,
                amount=Decimal(str(amount)),
                category_id=fallback_category,
                notes="From shopping list",
                is_recurring=False,
                created_by=created_by,
            ).to_payload())
        except StorageError as e:
            self.error = str(e)
        return updated


class TodoView(CollectionView[Todo]):

    async def toggle_complete(self, todo_id: str) -> Optional[Todo]:
        todo = self.get(todo_id)
        if todo is None:
            self.error = NOT_SYNCED_MESSAGE
            return None
        completed = not todo.completed
        now = _now_iso()
        return await self.update(todo_id, {
            "completed": completed,
            "completed_at": now if completed else None,
            "updated_at": now,
        })


class ReminderView(CollectionView[Reminder]):
    """Calendar reminders, ordered by date then time."""

    def for_date(self, day: Union[date, str]) -> list[Reminder]:
        if isinstance(day, str):
            day = date.fromisoformat(day)
        return [reminder for reminder in self.items if reminder.date == day]

    async def add_reminder(
        self,
        title: str,
        day: Union[date, str, None],
        time: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Optional[Reminder]:
        if not (title or "").strip() or not day:
            self.error = "Title and date are required"
            return None
        data = {
            "title": title.strip(),
            "date": day.isoformat() if isinstance(day, date) else day,
            "is_completed": False,
            "created_at": _now_iso(),
        }
        if time:
            data["time"] = time
        if description and description.strip():
            data["description"] = description.strip()
        if created_by:
            data["created_by"] = created_by
        return await self.add(data)

    async def toggle_complete(self, reminder_id: str) -> Optional[Reminder]:
        reminder = self.get(reminder_id)
        if reminder is None:
            self.error = NOT_SYNCED_MESSAGE
            return None
        return await self.update(reminder_id, {"is_completed": not reminder.is_completed})


class ShoppingListsView(CollectionView[ShoppingList]):
    """Named shopping lists, oldest first."""

    async def create_list(self, name: str) -> Optional[ShoppingList]:
        check = validate_list_name(name)
        if not check.is_valid:
            self.error = check.error
            return None
        now = _now_iso()
        return await self.add({"name": name.strip(), "created_at": now, "updated_at": now})

    async def rename(self, list_id: str, name: str) -> Optional[ShoppingList]:
        check = validate_list_name(name)
        if not check.is_valid:
            self.error = check.error
            return None
        return await self.update(list_id, {"name": name.strip(), "updated_at": _now_iso()})


VIEW_CLASSES: dict[EntityType, type[CollectionView]] = {
    EntityType.EXPENSES: ExpenseView,
    EntityType.CATEGORIES: CategoryView,
    EntityType.BUDGETS: BudgetView,
    EntityType.RECURRING_PAYMENTS: RecurringPaymentView,
    EntityType.SHOPPING_ITEMS: ShoppingListView,
    EntityType.TODOS: TodoView,
    EntityType.REMINDERS: ReminderView,
    EntityType.SHOPPING_LISTS: ShoppingListsView,
}
