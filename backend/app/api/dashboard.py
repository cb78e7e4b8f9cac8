# backend/app/api/dashboard.py
import csv
from io import StringIO
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from backend.app.api.deps import get_aggregation_engine, get_owner_id
from backend.app.schemas import (
    BreakdownResponse,
    CategoryAmount,
    MonthOut,
    OverviewResponse,
    TrendResponse,
)
from backend.app.services.aggregation import AggregationEngine
from backend.app.window import DateWindow

router = APIRouter()


@router.get("/category-breakdown", response_model=BreakdownResponse)
def category_breakdown(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    owner_id: int = Depends(get_owner_id),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    """Expense totals per category in the window."""
    breakdown = engine.category_breakdown(owner_id, DateWindow.from_params(start_date, end_date))
    return BreakdownResponse(breakdown=[CategoryAmount.model_validate(b) for b in breakdown])


@router.get("/monthly-trend", response_model=TrendResponse)
def monthly_trend(
    owner_id: int = Depends(get_owner_id),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    """Income and expenses per month over the last six months."""
    trend = engine.monthly_trend(owner_id)
    return TrendResponse(trend=[MonthOut.model_validate(m) for m in trend])


@router.get("/overview", response_model=OverviewResponse)
def overview(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    owner_id: int = Depends(get_owner_id),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    """
    Summary, breakdown, top category, savings rate, change against the
    previous window of the same length and the most recent transactions.
    """
    return OverviewResponse.model_validate(
        engine.overview(owner_id, DateWindow.from_params(start_date, end_date))
    )


@router.get("/download-report")
def download_report(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    owner_id: int = Depends(get_owner_id),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    """
    Download the expense breakdown (category, total spent, percentage) as CSV
    """
    breakdown = engine.category_breakdown(owner_id, DateWindow.from_params(start_date, end_date))
    total_spent = sum((b.amount for b in breakdown), 0)

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Category", "Total Spent", "Percentage"])

    for entry in breakdown:
        percent = round(entry.amount / total_spent * 100, 2) if total_spent > 0 else 0
        writer.writerow([entry.category.value, entry.amount, f"{percent}%"])

    output.seek(0)
    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=expense_report.csv"},
    )
