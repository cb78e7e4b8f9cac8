# backend/app/api/transactions.py
import io
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from backend.app.api.deps import (
    get_aggregation_engine,
    get_importer,
    get_owner_id,
    get_transaction_service,
)
from backend.app.config import Settings, get_settings
from backend.app.errors import ValidationError
from backend.app.schemas import (
    ImportResponse,
    MessageResponse,
    SummaryOut,
    SummaryResponse,
    TransactionCreate,
    TransactionOut,
    TransactionPage,
    TransactionResponse,
    TransactionUpdate,
)
from backend.app.services.aggregation import AggregationEngine
from backend.app.services.importer import CsvImporter
from backend.app.services.transactions import TransactionService, coerce_category, coerce_kind
from backend.app.store import TransactionFilters
from backend.app.window import DateWindow

router = APIRouter()


@router.get("", response_model=TransactionPage)
def list_transactions(
    kind: Optional[str] = Query(None, description="income or expense"),
    type_: Optional[str] = Query(None, alias="type"),
    category: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    limit: Optional[int] = Query(None, description="Alias of pageSize"),
    owner_id: int = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
    settings: Settings = Depends(get_settings),
):
    """
    Filtered, paginated transactions, newest first.
    All filters are optional and combined with AND.
    """
    size = page_size or limit or settings.default_page_size
    if size > settings.max_page_size:
        raise ValidationError(f"pageSize cannot exceed {settings.max_page_size}", field="pageSize")

    kind = kind or type_
    filters = TransactionFilters(
        kind=coerce_kind(kind) if kind else None,
        category=coerce_category(category) if category else None,
        window=DateWindow.from_params(start_date, end_date),
    )
    result = service.list_transactions(owner_id, filters, page=page, page_size=size)
    return TransactionPage(
        items=[TransactionOut.model_validate(t) for t in result.items],
        total_pages=result.total_pages,
        current_page=result.current_page,
        total=result.total,
    )


@router.post("", response_model=TransactionResponse, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    owner_id: int = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    transaction = service.create(
        owner_id,
        kind=payload.kind,
        amount=payload.amount,
        category=payload.category,
        description=payload.description,
        date=payload.date,
    )
    return TransactionResponse(
        message="Transaction created successfully",
        transaction=TransactionOut.model_validate(transaction),
    )


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    owner_id: int = Depends(get_owner_id),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    """Total income, expenses and balance in the window."""
    summary = engine.summarize(owner_id, DateWindow.from_params(start_date, end_date))
    return SummaryResponse(summary=SummaryOut.model_validate(summary))


@router.post("/upload-csv", response_model=ImportResponse)
def upload_transactions_csv(
    file: UploadFile = File(...),
    owner_id: int = Depends(get_owner_id),
    importer: CsvImporter = Depends(get_importer),
    settings: Settings = Depends(get_settings),
):
    """
    Upload a CSV with columns: kind (or type), amount, category, optional description and date.
    Rows that fail validation are skipped and reported; the rest are saved.
    """
    content = file.file.read(settings.max_upload_size_bytes + 1)
    if len(content) > settings.max_upload_size_bytes:
        raise ValidationError(f"File exceeds {settings.max_upload_size_mb} MB", field="file")

    result = importer.import_file(owner_id, io.BytesIO(content))
    return ImportResponse(imported=result.imported, skipped=result.skipped, errors=result.errors)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    owner_id: int = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    transaction = service.get(transaction_id, owner_id)
    return TransactionResponse(message="Transaction found", transaction=TransactionOut.model_validate(transaction))


@router.put("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    owner_id: int = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    # only the fields the client actually sent
    transaction = service.update(transaction_id, owner_id, payload.model_dump(exclude_unset=True))
    return TransactionResponse(
        message="Transaction updated successfully",
        transaction=TransactionOut.model_validate(transaction),
    )


@router.delete("/{transaction_id}", response_model=MessageResponse)
def delete_transaction(
    transaction_id: int,
    owner_id: int = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    service.delete(transaction_id, owner_id)
    return MessageResponse(message="Transaction deleted successfully")
