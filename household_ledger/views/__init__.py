"""Collection views: view state plus optimistic, offline-capable writes."""

from household_ledger.views.collection import CollectionView, describe_validation_error
from household_ledger.views.managers import (
    VIEW_CLASSES,
    BudgetView,
    CategoryView,
    ExpenseView,
    RecurringPaymentView,
    ReminderView,
    ShoppingListView,
    ShoppingListsView,
    TodoView,
)

__all__ = [
    "VIEW_CLASSES",
    "BudgetView",
    "CategoryView",
    "CollectionView",
    "ExpenseView",
    "RecurringPaymentView",
    "ReminderView",
    "ShoppingListView",
    "ShoppingListsView",
    "TodoView",
    "describe_validation_error",
]
