# backend/app/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backend.app.models.transaction_model import Category, Kind


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Incoming transaction payloads. Fields are optional here so that missing
# values are reported by the service with a field-level message.
class TransactionCreate(BaseModel):
    kind: Optional[Kind] = Field(default=None, validation_alias=AliasChoices("kind", "type"))
    amount: Optional[Decimal] = None
    category: Optional[Category] = None
    description: Optional[str] = None
    # ISO-8601 date or datetime, parsed by the service
    date: Optional[str] = None


class TransactionUpdate(TransactionCreate):
    pass


class TransactionOut(CamelModel):
    id: int
    kind: Kind
    amount: Decimal
    category: Category
    description: Optional[str] = None
    date: datetime
    created_at: datetime


class TransactionResponse(BaseModel):
    success: bool = True
    message: str
    transaction: TransactionOut


class TransactionPage(CamelModel):
    success: bool = True
    items: List[TransactionOut]
    total_pages: int
    current_page: int
    total: int


class SummaryOut(CamelModel):
    income: Decimal
    expense: Decimal
    balance: Decimal
    income_count: int
    expense_count: int


class SummaryResponse(BaseModel):
    success: bool = True
    summary: SummaryOut


class CategoryAmount(CamelModel):
    category: Category
    amount: Decimal


class BreakdownResponse(BaseModel):
    success: bool = True
    breakdown: List[CategoryAmount]


class MonthOut(CamelModel):
    month: str
    income: Decimal
    expense: Decimal


class TrendResponse(BaseModel):
    success: bool = True
    trend: List[MonthOut]


class OverviewResponse(CamelModel):
    success: bool = True
    summary: SummaryOut
    breakdown: List[CategoryAmount]
    top_category: Optional[Category] = None
    savings_rate: Decimal
    income_change: Decimal
    expense_change: Decimal
    recent: List[TransactionOut]


class ImportRowError(CamelModel):
    row: int
    field: Optional[str] = None
    message: str


class ImportResponse(CamelModel):
    success: bool = True
    imported: int
    skipped: int
    errors: List[ImportRowError]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# Identity
class RegisterIn(BaseModel):
    name: str
    email: str
    password: str


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    created_at: datetime


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut


class UserResponse(BaseModel):
    success: bool = True
    user: UserOut
