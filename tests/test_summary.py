"""Tests for the monthly spending summary."""

from datetime import date
from decimal import Decimal

from household_ledger.models import Budget, Category, Expense
from household_ledger.summary import spending_status, summarize_month


def expense(amount, category_id, day="2024-05-10"):
    return Expense(
        household_id="h1",
        date=date.fromisoformat(day),
        item_name="Item",
        amount=Decimal(amount),
        category_id=category_id,
    )


CATEGORIES = [
    Category(id="food", household_id="h1", name="Groceries"),
    Category(id="fun", household_id="h1", name="Entertainment"),
    Category(id="misc", household_id="h1", name="Household Items"),
]

BUDGETS = [
    Budget(household_id="h1", category_id="food", month="2024-05", limit_amount=Decimal("200")),
    Budget(household_id="h1", category_id="fun", month="2024-05", limit_amount=Decimal("50")),
    Budget(household_id="h1", category_id="food", month="2024-04", limit_amount=Decimal("10")),
]


class TestSpendingStatus:

    def test_thresholds(self):
        assert spending_status(50, True) == "green"
        assert spending_status(80, True) == "orange"
        assert spending_status(100, True) == "red"

    def test_no_limit_is_green(self):
        assert spending_status(100, False) == "green"


class TestSummarizeMonth:

    def test_totals_only_count_the_month(self):
        summary = summarize_month(
            [expense("20", "food"), expense("5", "food", day="2024-04-30")],
            CATEGORIES,
            BUDGETS,
            month="2024-05",
        )
        assert summary.total_spent == Decimal("20")
        assert summary.for_category("food").spent == Decimal("20")

    def test_percent_and_status_per_category(self):
        summary = summarize_month(
            [expense("170", "food"), expense("75", "fun"), expense("9", "misc")],
            CATEGORIES,
            BUDGETS,
            month="2024-05",
        )

        food = summary.for_category("food")
        assert food.limit == Decimal("200")
        assert food.percent_used == 85.0
        assert food.status == "orange"

        fun = summary.for_category("fun")
        assert fun.percent_used == 100.0
        assert fun.status == "red"

        misc = summary.for_category("misc")
        assert misc.limit == Decimal("0")
        assert misc.status == "green"

    def test_custom_warning_threshold(self):
        summary = summarize_month(
            [expense("120", "food")], CATEGORIES, BUDGETS, month="2024-05", warning_percent=50,
        )
        assert summary.for_category("food").status == "orange"

    def test_unknown_category(self):
        summary = summarize_month([], CATEGORIES, BUDGETS, month="2024-05")
        assert summary.for_category("missing") is None
        assert summary.total_spent == Decimal("0")
