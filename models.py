import uuid
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from periods import PeriodConfig


def _new_id() -> str:
    return str(uuid.uuid4())


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class TransactionStatus(str, Enum):
    paid = "paid"
    unpaid = "unpaid"


class PeriodType(str, Enum):
    monthly = "monthly"
    weekly = "weekly"
    yearly = "yearly"
    custom = "custom"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class UserPreferences(Base, TimestampMixin):
    __tablename__ = "user_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    custom_period_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    custom_period_start_day: Mapped[int] = mapped_column(
        Integer, default=1, nullable=False
    )
    custom_period_end_day: Mapped[int] = mapped_column(
        Integer, default=31, nullable=False
    )
    currency_preference: Mapped[str] = mapped_column(
        String(3), default="IDR", nullable=False
    )
    date_format: Mapped[str] = mapped_column(
        String(20), default="DD/MM/YYYY", nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "custom_period_start_day BETWEEN 1 AND 31",
            name="ck_preferences_start_day_range",
        ),
        CheckConstraint(
            "custom_period_end_day BETWEEN 1 AND 31",
            name="ck_preferences_end_day_range",
        ),
    )

    def period_config(self) -> PeriodConfig:
        return PeriodConfig(
            custom_period_enabled=self.custom_period_enabled,
            start_day=self.custom_period_start_day,
            end_day=self.custom_period_end_day,
        )


class MainCategory(Base, TimestampMixin):
    __tablename__ = "main_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    subcategories: Mapped[list["Subcategory"]] = relationship(
        "Subcategory", back_populates="main_category"
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "type", "name", name="uq_main_category_user_type_name"
        ),
    )


class Subcategory(Base, TimestampMixin):
    __tablename__ = "subcategories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    main_category_id: Mapped[str] = mapped_column(
        ForeignKey("main_categories.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Pre-period-table budget, read only by the calendar-month legacy summary.
    budget_amount_cents: Mapped[Optional[int]] = mapped_column(Integer)

    main_category: Mapped["MainCategory"] = relationship(
        "MainCategory", back_populates="subcategories"
    )

    __table_args__ = (
        UniqueConstraint(
            "main_category_id", "name", name="uq_subcategory_parent_name"
        ),
        Index("ix_subcategories_user_active", "user_id", "is_active"),
    )

    @property
    def type(self) -> TransactionType:
        return self.main_category.type


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus), default=TransactionStatus.paid, nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    # Either a subcategory id or a main category id.
    category_id: Mapped[str] = mapped_column(String(36), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "date"),
        Index(
            "ix_transactions_user_type_status_date", "user_id", "type", "status", "date"
        ),
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    period_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_type: Mapped[PeriodType] = mapped_column(
        SAEnum(PeriodType), default=PeriodType.monthly, nullable=False
    )
    main_category_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("main_categories.id")
    )
    subcategory_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("subcategories.id")
    )
    category_name: Mapped[str] = mapped_column(String(100), nullable=False)
    category_type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    budgeted_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_amount_cents: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    subcategory: Mapped[Optional["Subcategory"]] = relationship("Subcategory")
    main_category: Mapped[Optional["MainCategory"]] = relationship("MainCategory")

    __table_args__ = (
        CheckConstraint(
            "budgeted_amount_cents >= 0", name="ck_budget_amount_positive"
        ),
        CheckConstraint(
            "period_start_date <= period_end_date", name="ck_budget_period_order"
        ),
        UniqueConstraint(
            "user_id",
            "subcategory_id",
            "period_start_date",
            "period_end_date",
            name="uq_budget_user_subcategory_period",
        ),
        Index(
            "ix_budget_user_period", "user_id", "period_start_date", "period_end_date"
        ),
    )
