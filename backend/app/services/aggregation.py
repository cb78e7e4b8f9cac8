# backend/app/services/aggregation.py
"""
Read-only dashboard statistics over one owner's ledger:
- summary totals and balance
- expense breakdown by category
- monthly income/expense trend
- savings rate and period-over-period change
"""
import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from backend.app.models.transaction_model import Category, Kind, Transaction, utcnow
from backend.app.store import LedgerStore, TransactionFilters
from backend.app.window import DateWindow, month_start

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
TENTH = Decimal("0.1")
HUNDRED = Decimal("100")


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


@dataclass
class Summary:
    income: Decimal = ZERO
    expense: Decimal = ZERO
    income_count: int = 0
    expense_count: int = 0
    balance: Decimal = field(init=False, default=ZERO)

    def __post_init__(self):
        self.income = _money(self.income)
        self.expense = _money(self.expense)
        self.balance = self.income - self.expense


@dataclass
class CategoryTotal:
    category: Category
    amount: Decimal


@dataclass
class MonthTotals:
    month: str
    income: Decimal = ZERO
    expense: Decimal = ZERO


@dataclass
class Overview:
    summary: Summary
    breakdown: list
    top_category: Optional[Category]
    savings_rate: Decimal
    income_change: Decimal
    expense_change: Decimal
    recent: list


def top_category(breakdown: list) -> Optional[Category]:
    """Category with the largest amount; the earliest entry wins a tie."""
    best = None
    for entry in breakdown:
        if best is None or entry.amount > best.amount:
            best = entry
    return best.category if best is not None else None


def savings_rate(summary: Summary) -> Decimal:
    income = _money(summary.income)
    if income <= 0:
        return Decimal("0.0")
    rate = (income - _money(summary.expense)) / income * HUNDRED
    return max(Decimal("0.0"), rate.quantize(TENTH, rounding=ROUND_HALF_UP))


def period_change(current, previous) -> Decimal:
    current, previous = _money(current), _money(previous)
    if previous <= 0:
        return Decimal("0.0")
    return ((current - previous) / previous * HUNDRED).quantize(TENTH, rounding=ROUND_HALF_UP)


def month_label(year: int, month: int) -> str:
    return f"{calendar.month_abbr[month]} {year}"


class AggregationEngine:
    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = utcnow, trend_months: int = 6):
        self.store = store
        self.clock = clock
        self.trend_months = trend_months

    def summarize(self, owner_id: int, window: Optional[DateWindow] = None) -> Summary:
        totals = {Kind.INCOME: (ZERO, 0), Kind.EXPENSE: (ZERO, 0)}
        for kind, total, count in self.store.totals_by_kind(owner_id, window or DateWindow()):
            totals[Kind(kind)] = (_money(total), count)
        return Summary(
            income=totals[Kind.INCOME][0],
            expense=totals[Kind.EXPENSE][0],
            income_count=totals[Kind.INCOME][1],
            expense_count=totals[Kind.EXPENSE][1],
        )

    def category_breakdown(self, owner_id: int, window: Optional[DateWindow] = None) -> list[CategoryTotal]:
        # income is never broken down by category
        rows = self.store.totals_by_category(owner_id, window or DateWindow(), Kind.EXPENSE)
        return [CategoryTotal(category=Category(category), amount=_money(total)) for category, total in rows]

    def trend_window(self, now: Optional[datetime] = None) -> DateWindow:
        """The last ``trend_months`` calendar months up to the end of the current one."""
        now = now or self.clock()
        start = month_start(now, self.trend_months - 1)
        end = month_start(now, -1) - timedelta(microseconds=1)
        return DateWindow(start=start, end=end)

    def monthly_trend(self, owner_id: int, now: Optional[datetime] = None) -> list[MonthTotals]:
        """
        One row per month that has at least one transaction; empty months are
        left out rather than filled with zeros.
        """
        rows = {}
        for year, month, kind, total in self.store.totals_by_month(owner_id, self.trend_window(now)):
            key = (int(year), int(month))
            if key not in rows:
                rows[key] = MonthTotals(month=month_label(*key))
            setattr(rows[key], Kind(kind).value, _money(total))
        return [rows[key] for key in sorted(rows)]

    def overview(self, owner_id: int, window: Optional[DateWindow] = None, recent_limit: int = 5) -> Overview:
        window = window or DateWindow()
        summary = self.summarize(owner_id, window)
        breakdown = self.category_breakdown(owner_id, window)

        income_change = expense_change = Decimal("0.0")
        previous_window = window.previous()
        if previous_window is not None:
            previous = self.summarize(owner_id, previous_window)
            income_change = period_change(summary.income, previous.income)
            expense_change = period_change(summary.expense, previous.expense)

        recent: list[Transaction] = self.store.find(owner_id, TransactionFilters(), offset=0, limit=recent_limit)
        return Overview(
            summary=summary,
            breakdown=breakdown,
            top_category=top_category(breakdown),
            savings_rate=savings_rate(summary),
            income_change=income_change,
            expense_change=expense_change,
            recent=recent,
        )
