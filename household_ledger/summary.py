"""
Monthly Spending Summary

Per-category spending for one month against that month's budget limits,
as shown on the dashboard.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from household_ledger.models.entities import Budget, Category, Expense, current_month


class CategorySpending(BaseModel):
    category_id: str
    name: str
    spent: Decimal = Decimal("0")
    limit: Decimal = Decimal("0")
    percent_used: float = Field(default=0.0, ge=0.0, le=100.0)
    status: str = Field(default="green", pattern="^(green|orange|red)$")


class MonthlySummary(BaseModel):
    month: str
    total_spent: Decimal = Decimal("0")
    categories: list[CategorySpending] = Field(default_factory=list)

    def for_category(self, category_id: str) -> Optional[CategorySpending]:
        for row in self.categories:
            if row.category_id == category_id:
                return row
        return None


def spending_status(percent: float, has_limit: bool, warning_percent: float = 80.0) -> str:
    if has_limit and percent >= 100:
        return "red"
    if has_limit and percent >= warning_percent:
        return "orange"
    return "green"


def summarize_month(
    expenses: list[Expense],
    categories: list[Category],
    budgets: list[Budget],
    month: Optional[str] = None,
    warning_percent: float = 80.0,
) -> MonthlySummary:
    """
    Total and per-category spending for `month` (YYYY-MM, default: this month).

    Percent used is capped at 100; a category without a budget is always green.
    """
    month = month or current_month()
    in_month = [e for e in expenses if e.date.isoformat().startswith(month)]

    totals: dict[str, Decimal] = {}
    for expense in in_month:
        totals[expense.category_id] = totals.get(expense.category_id, Decimal("0")) + expense.amount

    rows = []
    for category in categories:
        spent = totals.get(category.id, Decimal("0"))
        budget = next(
            (b for b in budgets if b.category_id == category.id and b.month == month),
            None,
        )
        limit = budget.limit_amount if budget else Decimal("0")
        percent = min(100.0, float(spent / limit * 100)) if limit else 0.0
        rows.append(CategorySpending(
            category_id=category.id or "",
            name=category.name,
            spent=spent,
            limit=limit,
            percent_used=percent,
            status=spending_status(percent, bool(limit), warning_percent),
        ))

    return MonthlySummary(
        month=month,
        total_spent=sum((e.amount for e in in_month), Decimal("0")),
        categories=rows,
    )
