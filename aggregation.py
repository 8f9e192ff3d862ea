"""Budget-vs-actual roll-up.

Works on already-fetched rows so the arithmetic can be exercised without a
database. Inputs only need the attributes read below, which the ORM models
provide.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional, Protocol


class _MainCategoryRow(Protocol):
    id: str
    name: str


class _SubcategoryRow(Protocol):
    id: str
    name: str
    main_category_id: str


class _TransactionRow(Protocol):
    category_id: str
    amount_cents: int


def budget_percentage(budget_cents: int, spent_cents: int) -> float:
    if budget_cents == 0:
        # Any spend against a zero budget reads as fully used.
        return 100.0 if spent_cents > 0 else 0.0
    return spent_cents / budget_cents * 100


@dataclass(frozen=True)
class CategoryBudgetSummary:
    id: str
    name: str
    budget_amount_cents: int
    spent_cents: int
    remaining_cents: int
    percentage: float

    @classmethod
    def build(
        cls, id: str, name: str, budget_amount_cents: int, spent_cents: int
    ) -> CategoryBudgetSummary:
        return cls(
            id=id,
            name=name,
            budget_amount_cents=budget_amount_cents,
            spent_cents=spent_cents,
            remaining_cents=budget_amount_cents - spent_cents,
            percentage=budget_percentage(budget_amount_cents, spent_cents),
        )

    @property
    def over_budget(self) -> bool:
        return self.remaining_cents < 0


@dataclass(frozen=True)
class MainCategoryBudgetSummary(CategoryBudgetSummary):
    subcategory_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class BudgetSummary:
    period_start: Optional[date]
    period_end: Optional[date]
    total_budget_cents: int
    total_spent_cents: int
    categories: list[CategoryBudgetSummary] = field(default_factory=list)
    main_categories: list[MainCategoryBudgetSummary] = field(default_factory=list)

    @property
    def total_remaining_cents(self) -> int:
        return self.total_budget_cents - self.total_spent_cents

    @property
    def categories_over_budget(self) -> int:
        return sum(1 for c in self.categories if c.over_budget)

    @property
    def categories_under_budget(self) -> int:
        return sum(1 for c in self.categories if c.remaining_cents > 0)

    @property
    def categories_on_target(self) -> int:
        return sum(1 for c in self.categories if c.remaining_cents == 0)

    def category(self, category_id: str) -> Optional[CategoryBudgetSummary]:
        for row in self.categories:
            if row.id == category_id:
                return row
        return None

    def main_category(self, category_id: str) -> Optional[MainCategoryBudgetSummary]:
        for row in self.main_categories:
            if row.id == category_id:
                return row
        return None


def spent_by_category(
    transactions: Iterable[_TransactionRow],
    excluded_category_ids: frozenset[str] = frozenset(),
) -> dict[str, int]:
    totals: dict[str, int] = defaultdict(int)
    for txn in transactions:
        if txn.category_id in excluded_category_ids:
            continue
        totals[txn.category_id] += txn.amount_cents
    return dict(totals)


def summarize_budgets(
    main_categories: Iterable[_MainCategoryRow],
    subcategories: Iterable[_SubcategoryRow],
    budgeted_by_subcategory: Mapping[str, int],
    transactions: Iterable[_TransactionRow],
    *,
    excluded_category_ids: frozenset[str] = frozenset(),
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
) -> BudgetSummary:
    spent = spent_by_category(transactions, excluded_category_ids)

    # Every subcategory gets a row, budgeted or not, so the view is complete.
    categories: list[CategoryBudgetSummary] = []
    children: dict[str, list[CategoryBudgetSummary]] = defaultdict(list)
    for sub in subcategories:
        row = CategoryBudgetSummary.build(
            id=sub.id,
            name=sub.name,
            budget_amount_cents=int(budgeted_by_subcategory.get(sub.id, 0)),
            spent_cents=spent.get(sub.id, 0),
        )
        categories.append(row)
        children[sub.main_category_id].append(row)

    main_summaries: list[MainCategoryBudgetSummary] = []
    for main in main_categories:
        rows = children.get(main.id, [])
        budget = sum(r.budget_amount_cents for r in rows)
        total_spent = sum(r.spent_cents for r in rows)
        main_summaries.append(
            MainCategoryBudgetSummary(
                id=main.id,
                name=main.name,
                budget_amount_cents=budget,
                spent_cents=total_spent,
                remaining_cents=budget - total_spent,
                percentage=budget_percentage(budget, total_spent),
                subcategory_ids=tuple(r.id for r in rows),
            )
        )

    return BudgetSummary(
        period_start=period_start,
        period_end=period_end,
        total_budget_cents=sum(r.budget_amount_cents for r in categories),
        total_spent_cents=sum(r.spent_cents for r in categories),
        categories=categories,
        main_categories=main_summaries,
    )
