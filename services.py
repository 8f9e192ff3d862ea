from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import Row, func, select
from sqlalchemy.orm import Session, joinedload

from aggregation import BudgetSummary, summarize_budgets
from cache import TTLCache
from config import get_settings
from models import (
    Budget,
    MainCategory,
    PeriodType,
    Subcategory,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserPreferences,
)
from periods import (
    DateRange,
    PeriodConfig,
    PeriodDescriptor,
    describe_period,
    enumerate_periods,
    month_range,
    previous_period,
    resolve_current_period,
)
from schemas import (
    BudgetIn,
    MainCategoryIn,
    PreferencesUpdate,
    SubcategoryIn,
    TransactionIn,
)

logger = logging.getLogger(__name__)


def get_current_user_id() -> int:
    return 1


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


class PreferencesService:
    def __init__(
        self,
        session: Session,
        user_id: Optional[int] = None,
        *,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.cache = cache

    def _find(self) -> Optional[UserPreferences]:
        return self.session.scalar(
            select(UserPreferences).where(UserPreferences.user_id == self.user_id)
        )

    def get(self) -> UserPreferences:
        prefs = self._find()
        if prefs:
            return prefs

        prefs = UserPreferences(
            user_id=self.user_id,
            custom_period_enabled=False,
            custom_period_start_day=1,
            custom_period_end_day=31,
        )
        self.session.add(prefs)
        self.session.commit()
        self.session.refresh(prefs)
        logger.info(f"preferences_created: user_id={self.user_id}")
        return prefs

    def get_config(self) -> PeriodConfig:
        return self.get().period_config()

    def update(self, data: PreferencesUpdate) -> UserPreferences:
        prefs = self.get()
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for name, value in changes.items():
            setattr(prefs, name, value)
        self.session.commit()
        self.session.refresh(prefs)

        dropped = 0
        if self.cache is not None:
            dropped = self.cache.discard(
                lambda key: isinstance(key, tuple) and key[0] == self.user_id
            )
        logger.info(
            f"preferences_updated: user_id={self.user_id} "
            f"fields={sorted(changes)} cache_entries_dropped={dropped}"
        )
        return prefs


class CategoryService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_main(
        self,
        *,
        type: Optional[TransactionType] = None,
        include_inactive: bool = False,
    ) -> list[MainCategory]:
        stmt = (
            select(MainCategory)
            .where(MainCategory.user_id == self.user_id)
            .order_by(MainCategory.order.asc(), MainCategory.name.asc())
        )
        if type:
            stmt = stmt.where(MainCategory.type == type)
        if not include_inactive:
            stmt = stmt.where(MainCategory.is_active.is_(True))
        return self.session.scalars(stmt).all()

    def list_subcategories(
        self,
        *,
        main_category_id: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[Subcategory]:
        stmt = (
            select(Subcategory)
            .where(Subcategory.user_id == self.user_id)
            .order_by(Subcategory.order.asc(), Subcategory.name.asc())
        )
        if main_category_id:
            stmt = stmt.where(Subcategory.main_category_id == main_category_id)
        if not include_inactive:
            stmt = stmt.where(Subcategory.is_active.is_(True))
        return self.session.scalars(stmt).all()

    def create_main(self, data: MainCategoryIn) -> MainCategory:
        exists = self.session.scalar(
            select(MainCategory).where(
                MainCategory.user_id == self.user_id,
                MainCategory.type == data.type,
                MainCategory.name == data.name,
            )
        )
        if exists:
            raise ValueError("Category with this name already exists")
        category = MainCategory(
            user_id=self.user_id, name=data.name, type=data.type, order=data.order
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def create_subcategory(self, data: SubcategoryIn) -> Subcategory:
        parent = self.session.get(MainCategory, data.main_category_id)
        if not parent or parent.user_id != self.user_id:
            raise ValueError("Main category not found")
        exists = self.session.scalar(
            select(Subcategory).where(
                Subcategory.main_category_id == parent.id,
                Subcategory.name == data.name,
            )
        )
        if exists:
            raise ValueError("Subcategory with this name already exists")
        sub = Subcategory(
            user_id=self.user_id,
            main_category_id=parent.id,
            name=data.name,
            order=data.order,
            budget_amount_cents=data.budget_amount_cents,
        )
        self.session.add(sub)
        self.session.commit()
        self.session.refresh(sub)
        return sub

    def set_active(self, category_id: str, active: bool) -> None:
        category = self.session.get(Subcategory, category_id) or self.session.get(
            MainCategory, category_id
        )
        if not category or category.user_id != self.user_id:
            raise ValueError("Category not found")
        category.is_active = active
        self.session.commit()


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _category_type(self, category_id: str) -> Optional[TransactionType]:
        sub = self.session.get(Subcategory, category_id)
        if sub and sub.user_id == self.user_id:
            return sub.main_category.type
        main = self.session.get(MainCategory, category_id)
        if main and main.user_id == self.user_id:
            return main.type
        return None

    def create(self, data: TransactionIn) -> Transaction:
        category_type = self._category_type(data.category_id)
        if category_type is None:
            raise ValueError("Category not found")
        if category_type != data.type:
            raise ValueError("Category type mismatch")
        txn = Transaction(
            user_id=self.user_id,
            date=data.date,
            type=data.type,
            status=data.status,
            amount_cents=data.amount_cents,
            category_id=data.category_id,
            description=data.description,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def earliest_date(self) -> Optional[date]:
        return self.session.scalar(
            select(func.min(Transaction.date)).where(
                Transaction.user_id == self.user_id
            )
        )

    def paid_in_range(
        self, start: date, end: date, *, type: TransactionType
    ) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(
                Transaction.user_id == self.user_id,
                Transaction.type == type,
                Transaction.status == TransactionStatus.paid,
                Transaction.date.between(start, end),
            )
            .order_by(Transaction.date.asc(), Transaction.id.asc())
        )
        return self.session.scalars(stmt).all()


class PeriodService:
    """Current and historical budget periods for one user.

    The current range and its label are memoized in ``cache``; pass the same
    cache to PreferencesService so a settings change drops them.
    """

    def __init__(
        self,
        session: Session,
        user_id: Optional[int] = None,
        *,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        if cache is None:
            cache = TTLCache(get_settings().period_cache_ttl_secs)
        self.cache = cache
        self.preferences = PreferencesService(session, self.user_id, cache=self.cache)

    def config(self) -> PeriodConfig:
        return self.preferences.get_config()

    def current_range(self, today: Optional[date] = None) -> DateRange:
        today = today or local_today()
        key = (self.user_id, "range", today)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        period = resolve_current_period(today, self.config())
        self.cache.set(key, period)
        logger.debug(
            f"period_resolved: user_id={self.user_id} start={period.start} "
            f"end={period.end}"
        )
        return period

    def current_description(self, today: Optional[date] = None) -> str:
        today = today or local_today()
        return self.cache.get_or_compute(
            (self.user_id, "description", today),
            lambda: describe_period(self.current_range(today)),
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    def available_periods(self, today: Optional[date] = None) -> list[PeriodDescriptor]:
        today = today or local_today()
        earliest = TransactionService(self.session, self.user_id).earliest_date()
        return enumerate_periods(earliest, today, self.config())

    def period_options(self, today: Optional[date] = None) -> list[PeriodDescriptor]:
        today = today or local_today()
        periods = self.available_periods(today)
        if periods:
            return periods
        current = self.current_range(today)
        return [PeriodDescriptor(current, self.current_description(today))]

    def is_date_in_current_period(
        self, day: date, today: Optional[date] = None
    ) -> bool:
        return self.current_range(today).contains(day)


class BudgetService:
    def __init__(
        self,
        session: Session,
        user_id: Optional[int] = None,
        *,
        excluded_category_ids: Optional[frozenset[str]] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        if excluded_category_ids is None:
            excluded_category_ids = get_settings().internal_transfer_category_ids
        self.excluded_category_ids = excluded_category_ids

    def list_for_period(
        self,
        period_start: date,
        period_end: date,
        *,
        category_type: Optional[TransactionType] = None,
    ) -> list[Budget]:
        stmt = (
            select(Budget)
            .where(
                Budget.user_id == self.user_id,
                Budget.period_start_date == period_start,
                Budget.period_end_date == period_end,
                Budget.is_active.is_(True),
            )
            .order_by(Budget.category_type.asc(), Budget.category_name.asc())
        )
        if category_type:
            stmt = stmt.where(Budget.category_type == category_type)
        return self.session.scalars(stmt).all()

    def set_budget(self, data: BudgetIn) -> Budget:
        sub = self.session.get(
            Subcategory,
            data.subcategory_id,
            options=[joinedload(Subcategory.main_category)],
        )
        if not sub or sub.user_id != self.user_id:
            raise ValueError("Subcategory not found")
        if sub.main_category.type != TransactionType.expense:
            raise ValueError("Budgets can only be set for expense categories")

        existing = self.session.scalar(
            select(Budget).where(
                Budget.user_id == self.user_id,
                Budget.subcategory_id == sub.id,
                Budget.period_start_date == data.period_start_date,
                Budget.period_end_date == data.period_end_date,
            )
        )
        if existing:
            existing.budgeted_amount_cents = data.budgeted_amount_cents
            existing.period_type = data.period_type
            existing.notes = data.notes
            existing.is_active = True
            self.session.commit()
            self.session.refresh(existing)
            return existing

        budget = Budget(
            user_id=self.user_id,
            period_start_date=data.period_start_date,
            period_end_date=data.period_end_date,
            period_type=data.period_type,
            main_category_id=sub.main_category_id,
            subcategory_id=sub.id,
            category_name=sub.name,
            category_type=sub.main_category.type,
            budgeted_amount_cents=data.budgeted_amount_cents,
            actual_amount_cents=0,
            notes=data.notes,
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        logger.info(
            f"budget_created: user_id={self.user_id} subcategory_id={sub.id} "
            f"period={data.period_start_date}..{data.period_end_date}"
        )
        return budget

    def delete_budget(self, budget_id: int) -> None:
        budget = self.session.get(Budget, budget_id)
        if not budget or budget.user_id != self.user_id:
            raise ValueError("Budget not found")
        self.session.delete(budget)
        self.session.commit()
        logger.info(f"budget_deleted: user_id={self.user_id} budget_id={budget_id}")

    def copy_from_previous_period(self, today: Optional[date] = None) -> int:
        today = today or local_today()
        config = PreferencesService(self.session, self.user_id).get_config()
        current = resolve_current_period(today, config)
        if self.list_for_period(current.start, current.end):
            return 0

        previous = previous_period(today, config)
        period_type = PeriodType.custom if config.custom_period_enabled else None
        created = 0
        for prev in self.list_for_period(previous.start, previous.end):
            self.session.add(
                Budget(
                    user_id=self.user_id,
                    period_start_date=current.start,
                    period_end_date=current.end,
                    period_type=period_type or prev.period_type,
                    main_category_id=prev.main_category_id,
                    subcategory_id=prev.subcategory_id,
                    category_name=prev.category_name,
                    category_type=prev.category_type,
                    budgeted_amount_cents=prev.budgeted_amount_cents,
                    actual_amount_cents=0,
                    notes="Copied from previous period",
                )
            )
            created += 1
        self.session.commit()
        logger.info(
            f"budgets_copied: user_id={self.user_id} from={previous.start} "
            f"to={current.start} count={created}"
        )
        return created

    def _active_subcategories(self) -> list[Subcategory]:
        return CategoryService(self.session, self.user_id).list_subcategories()

    def _expense_main_categories(self) -> list[MainCategory]:
        return CategoryService(self.session, self.user_id).list_main(
            type=TransactionType.expense
        )

    def _paid_expense_amounts(self, start: date, end: date) -> list[Row]:
        stmt = select(Transaction.category_id, Transaction.amount_cents).where(
            Transaction.user_id == self.user_id,
            Transaction.type == TransactionType.expense,
            Transaction.status == TransactionStatus.paid,
            Transaction.date.between(start, end),
        )
        return self.session.execute(stmt).all()

    def summary(self, period_start: date, period_end: date) -> BudgetSummary:
        if period_start > period_end:
            raise ValueError("Start date must not be after end date")

        subcategories = self._active_subcategories()
        main_categories = self._expense_main_categories()
        budgets = self.list_for_period(
            period_start, period_end, category_type=TransactionType.expense
        )
        budgeted = {
            b.subcategory_id: b.budgeted_amount_cents
            for b in budgets
            if b.subcategory_id is not None
        }
        amounts = self._paid_expense_amounts(period_start, period_end)

        return summarize_budgets(
            main_categories,
            subcategories,
            budgeted,
            amounts,
            excluded_category_ids=self.excluded_category_ids,
            period_start=period_start,
            period_end=period_end,
        )

    def legacy_summary(self, today: Optional[date] = None) -> BudgetSummary:
        """Calendar-month summary budgeted from ``Subcategory.budget_amount_cents``.

        Predates the budgets table; kept for callers that never moved to
        period-scoped budgets.
        """
        month = month_range(today or local_today())
        subcategories = [
            sub
            for sub in self._active_subcategories()
            if sub.budget_amount_cents is not None
        ]
        budgeted = {sub.id: sub.budget_amount_cents for sub in subcategories}
        amounts = self._paid_expense_amounts(month.start, month.end)
        return summarize_budgets(
            self._expense_main_categories(),
            subcategories,
            budgeted,
            amounts,
            excluded_category_ids=self.excluded_category_ids,
            period_start=month.start,
            period_end=month.end,
        )

    def record_actuals(self, period_start: date, period_end: date) -> int:
        summary = self.summary(period_start, period_end)
        updated = 0
        for budget in self.list_for_period(period_start, period_end):
            if budget.subcategory_id:
                row = summary.category(budget.subcategory_id)
            elif budget.main_category_id:
                row = summary.main_category(budget.main_category_id)
            else:
                row = None
            budget.actual_amount_cents = row.spent_cents if row else 0
            updated += 1
        self.session.commit()
        logger.info(
            f"budget_actuals_recorded: user_id={self.user_id} "
            f"period={period_start}..{period_end} budgets={updated}"
        )
        return updated
