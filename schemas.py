from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import PeriodType, TransactionStatus, TransactionType


class PreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    custom_period_enabled: Optional[bool] = None
    custom_period_start_day: Optional[int] = Field(default=None, ge=1, le=31)
    custom_period_end_day: Optional[int] = Field(default=None, ge=1, le=31)
    currency_preference: Optional[str] = Field(
        default=None, min_length=3, max_length=3
    )
    date_format: Optional[str] = Field(default=None, min_length=1, max_length=20)


class PreferencesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    custom_period_enabled: bool
    custom_period_start_day: int
    custom_period_end_day: int
    currency_preference: str
    date_format: str


class MainCategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    order: int = 0


class SubcategoryIn(BaseModel):
    main_category_id: str
    name: str = Field(..., min_length=1, max_length=100)
    order: int = 0
    budget_amount_cents: Optional[int] = Field(default=None, ge=0)


class TransactionIn(BaseModel):
    date: date
    type: TransactionType
    amount_cents: int = Field(..., ge=0)
    category_id: str
    status: TransactionStatus = TransactionStatus.paid
    description: Optional[str] = Field(default=None, max_length=200)


class BudgetIn(BaseModel):
    period_start_date: date
    period_end_date: date
    period_type: PeriodType = PeriodType.monthly
    subcategory_id: str
    budgeted_amount_cents: int = Field(..., ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _check_period_order(self) -> "BudgetIn":
        if self.period_start_date > self.period_end_date:
            raise ValueError("Period start must not be after period end")
        return self


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    period_start_date: date
    period_end_date: date
    period_type: PeriodType
    main_category_id: Optional[str]
    subcategory_id: Optional[str]
    category_name: str
    category_type: TransactionType
    budgeted_amount_cents: int
    actual_amount_cents: int
    notes: Optional[str]
