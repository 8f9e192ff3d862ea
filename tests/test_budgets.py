from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from database import Base
from models import Budget, PeriodType, TransactionStatus, TransactionType
from schemas import (
    BudgetIn,
    MainCategoryIn,
    PreferencesUpdate,
    SubcategoryIn,
    TransactionIn,
)
from services import (
    BudgetService,
    CategoryService,
    PreferencesService,
    TransactionService,
)

AUG_START = date(2025, 8, 1)
AUG_END = date(2025, 8, 31)


def _seed(session: Session) -> dict[str, str]:
    categories = CategoryService(session)
    food = categories.create_main(
        MainCategoryIn(name="Food", type=TransactionType.expense)
    )
    transport = categories.create_main(
        MainCategoryIn(name="Transport", type=TransactionType.expense, order=1)
    )
    other = categories.create_main(
        MainCategoryIn(name="Other", type=TransactionType.expense, order=2)
    )
    salary = categories.create_main(
        MainCategoryIn(name="Salary", type=TransactionType.income)
    )
    ids = {
        "food": food.id,
        "transport": transport.id,
        "groceries": categories.create_subcategory(
            SubcategoryIn(main_category_id=food.id, name="Groceries")
        ).id,
        "dining": categories.create_subcategory(
            SubcategoryIn(main_category_id=food.id, name="Dining", order=1)
        ).id,
        "fuel": categories.create_subcategory(
            SubcategoryIn(main_category_id=transport.id, name="Fuel")
        ).id,
        "transfer": categories.create_subcategory(
            SubcategoryIn(main_category_id=other.id, name="Internal Transfer")
        ).id,
        "payroll": categories.create_subcategory(
            SubcategoryIn(main_category_id=salary.id, name="Payroll")
        ).id,
    }
    return ids


def _expense(
    session: Session,
    category_id: str,
    amount_cents: int,
    day: date,
    status: TransactionStatus = TransactionStatus.paid,
) -> None:
    TransactionService(session).create(
        TransactionIn(
            date=day,
            type=TransactionType.expense,
            amount_cents=amount_cents,
            category_id=category_id,
            status=status,
        )
    )


def _budget(session: Session, subcategory_id: str, amount_cents: int) -> Budget:
    return BudgetService(session).set_budget(
        BudgetIn(
            period_start_date=AUG_START,
            period_end_date=AUG_END,
            subcategory_id=subcategory_id,
            budgeted_amount_cents=amount_cents,
        )
    )


def _service(session: Session, ids: dict[str, str]) -> BudgetService:
    return BudgetService(session, excluded_category_ids=frozenset({ids["transfer"]}))


def test_overspent_groceries_report_negative_remaining() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        _budget(session, ids["groceries"], 1_000_000)
        _expense(session, ids["groceries"], 750_000, date(2025, 8, 3))
        _expense(session, ids["groceries"], 500_000, date(2025, 8, 31))
        # Not counted: unpaid, and outside the period.
        _expense(
            session,
            ids["groceries"],
            99_000,
            date(2025, 8, 20),
            status=TransactionStatus.unpaid,
        )
        _expense(session, ids["groceries"], 12_000, date(2025, 9, 1))

        summary = _service(session, ids).summary(AUG_START, AUG_END)
        groceries = summary.category(ids["groceries"])

        assert groceries.spent_cents == 1_250_000
        assert groceries.remaining_cents == -250_000
        assert groceries.percentage == 125.0


def test_internal_transfers_never_count_as_spend() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        _budget(session, ids["transfer"], 100_000)
        _expense(session, ids["transfer"], 5_000_000, date(2025, 8, 10))
        _expense(session, ids["fuel"], 30_000, date(2025, 8, 10))

        summary = _service(session, ids).summary(AUG_START, AUG_END)

        assert summary.category(ids["transfer"]).spent_cents == 0
        assert summary.total_spent_cents == 30_000


def test_summary_totals_and_main_category_roll_up() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        _budget(session, ids["groceries"], 1_000_000)
        _budget(session, ids["dining"], 200_000)
        _expense(session, ids["groceries"], 400_000, date(2025, 8, 2))
        _expense(session, ids["dining"], 50_000, date(2025, 8, 9))
        _expense(session, ids["fuel"], 30_000, date(2025, 8, 12))

        summary = _service(session, ids).summary(AUG_START, AUG_END)

        assert summary.total_budget_cents == 1_200_000
        assert summary.total_spent_cents == 480_000
        assert summary.total_spent_cents == sum(
            c.spent_cents for c in summary.categories
        )
        assert summary.total_budget_cents == sum(
            c.budget_amount_cents for c in summary.categories
        )

        food = summary.main_category(ids["food"])
        assert food.budget_amount_cents == 1_200_000
        assert food.spent_cents == 450_000
        transport = summary.main_category(ids["transport"])
        assert transport.spent_cents == 30_000
        assert transport.percentage == 100.0

        # Income main categories are not rolled up.
        assert {m.name for m in summary.main_categories} == {
            "Food",
            "Transport",
            "Other",
        }
        # Every active subcategory has a row.
        assert len(summary.categories) == 5


def test_summary_is_idempotent() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        _budget(session, ids["groceries"], 1_000_000)
        _expense(session, ids["groceries"], 123_456, date(2025, 8, 5))

        service = _service(session, ids)
        assert service.summary(AUG_START, AUG_END) == service.summary(
            AUG_START, AUG_END
        )


def test_inactive_subcategories_are_left_out() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        CategoryService(session).set_active(ids["dining"], False)

        summary = _service(session, ids).summary(AUG_START, AUG_END)
        assert summary.category(ids["dining"]) is None
        assert ids["dining"] not in summary.main_category(ids["food"]).subcategory_ids


def test_summary_rejects_inverted_period() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        with pytest.raises(ValueError):
            BudgetService(session).summary(AUG_END, AUG_START)


def test_set_budget_updates_in_place() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        first = _budget(session, ids["groceries"], 100)
        second = _budget(session, ids["groceries"], 250)

        assert first.id == second.id
        rows = session.scalars(select(Budget)).all()
        assert len(rows) == 1
        assert rows[0].budgeted_amount_cents == 250
        assert rows[0].category_name == "Groceries"
        assert rows[0].category_type == TransactionType.expense
        assert rows[0].main_category_id == ids["food"]


def test_set_budget_validates_subcategory() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        with pytest.raises(ValueError, match="expense"):
            _budget(session, ids["payroll"], 100)
        with pytest.raises(ValueError, match="not found"):
            _budget(session, "missing", 100)


def test_transaction_category_type_must_match() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        with pytest.raises(ValueError, match="mismatch"):
            _expense(session, ids["payroll"], 100, date(2025, 8, 1))
        with pytest.raises(ValueError, match="not found"):
            _expense(session, "missing", 100, date(2025, 8, 1))


def test_legacy_summary_reads_subcategory_budget_for_calendar_month() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        categories = CategoryService(session)
        food = categories.create_main(
            MainCategoryIn(name="Food", type=TransactionType.expense)
        )
        groceries = categories.create_subcategory(
            SubcategoryIn(
                main_category_id=food.id, name="Groceries", budget_amount_cents=500_000
            )
        )
        categories.create_subcategory(
            SubcategoryIn(main_category_id=food.id, name="Snacks")
        )
        _expense(session, groceries.id, 200_000, date(2025, 8, 4))
        _expense(session, groceries.id, 1_000, date(2025, 7, 31))

        summary = BudgetService(session, excluded_category_ids=frozenset()).legacy_summary(
            date(2025, 8, 15)
        )

        assert (summary.period_start, summary.period_end) == (AUG_START, AUG_END)
        assert [c.name for c in summary.categories] == ["Groceries"]
        assert summary.total_budget_cents == 500_000
        assert summary.total_spent_cents == 200_000
        assert summary.category(groceries.id).remaining_cents == 300_000


def test_record_actuals_snapshots_spend_on_budget_rows() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        _budget(session, ids["groceries"], 1_000_000)
        _budget(session, ids["fuel"], 50_000)
        _expense(session, ids["groceries"], 333_000, date(2025, 8, 14))
        session.add(
            Budget(
                user_id=1,
                period_start_date=AUG_START,
                period_end_date=AUG_END,
                main_category_id=ids["food"],
                category_name="Food",
                category_type=TransactionType.expense,
                budgeted_amount_cents=2_000_000,
            )
        )
        session.commit()

        service = _service(session, ids)
        assert service.record_actuals(AUG_START, AUG_END) == 3

        actuals = {
            b.category_name: b.actual_amount_cents
            for b in service.list_for_period(AUG_START, AUG_END)
        }
        assert actuals == {"Groceries": 333_000, "Fuel": 0, "Food": 333_000}


def test_copy_from_previous_period_runs_once() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        PreferencesService(session).update(
            PreferencesUpdate(
                custom_period_enabled=True,
                custom_period_start_day=25,
                custom_period_end_day=24,
            )
        )
        service = _service(session, ids)
        for sub, amount in (("groceries", 900_000), ("fuel", 80_000)):
            service.set_budget(
                BudgetIn(
                    period_start_date=date(2025, 6, 25),
                    period_end_date=date(2025, 7, 24),
                    period_type=PeriodType.custom,
                    subcategory_id=ids[sub],
                    budgeted_amount_cents=amount,
                )
            )

        today = date(2025, 8, 10)
        assert service.copy_from_previous_period(today) == 2
        assert service.copy_from_previous_period(today) == 0

        copied = service.list_for_period(date(2025, 7, 25), date(2025, 8, 24))
        assert sorted(b.budgeted_amount_cents for b in copied) == [80_000, 900_000]
        assert {b.notes for b in copied} == {"Copied from previous period"}
        assert {b.period_type for b in copied} == {PeriodType.custom}


def test_delete_budget_removes_row_and_allows_recreate() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        budget_id = _budget(session, ids["groceries"], 1_000_000).id
        _expense(session, ids["groceries"], 40_000, date(2025, 8, 3))

        service = _service(session, ids)
        service.delete_budget(budget_id)

        assert service.list_for_period(AUG_START, AUG_END) == []
        summary = service.summary(AUG_START, AUG_END)
        assert summary.total_budget_cents == 0
        assert summary.category(ids["groceries"]).spent_cents == 40_000

        with pytest.raises(ValueError, match="not found"):
            service.delete_budget(budget_id)

        assert _budget(session, ids["groceries"], 500).budgeted_amount_cents == 500


def test_delete_budget_rejects_other_users_rows() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)
        budget = _budget(session, ids["groceries"], 1_000_000)

        with pytest.raises(ValueError, match="not found"):
            BudgetService(session, user_id=2).delete_budget(budget.id)
        assert len(BudgetService(session).list_for_period(AUG_START, AUG_END)) == 1
