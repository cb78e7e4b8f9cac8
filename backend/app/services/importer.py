# backend/app/services/importer.py
"""
Bulk import of transactions from a CSV file.

Expected columns: kind (or type), amount, category, and optionally
description and date. Category labels that are not an exact match are
mapped onto the categories of the row's kind with rapidfuzz.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, List, Optional

import pandas as pd
from rapidfuzz import fuzz, process, utils

from backend.app.errors import ValidationError
from backend.app.logging_config import get_logger
from backend.app.models.transaction_model import Category, categories_for
from backend.app.services.transactions import TransactionService, coerce_kind
from backend.app.window import parse_bound

logger = get_logger(__name__)

REQUIRED_COLUMNS = {"amount", "category"}
KIND_COLUMNS = ("kind", "type")
# accepted in addition to ISO-8601
EXTRA_DATE_FORMATS = ("%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d")


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: List[dict] = field(default_factory=list)


def resolve_category(label: str, kind, score_cutoff: int = 80) -> Optional[Category]:
    """Map a free-form label onto one of ``kind``'s categories, or None."""
    choices = [c.value for c in categories_for(kind)]
    text = (label or "").strip().lower()
    if not text:
        return None
    if text in choices:
        return Category(text)
    match = process.extractOne(
        text,
        choices,
        scorer=fuzz.partial_ratio,
        processor=utils.default_process,
        score_cutoff=score_cutoff,
    )
    if match is None:
        return None
    return Category(match[0])


def parse_import_date(value: str) -> Optional[datetime]:
    text = (value or "").strip()
    if not text:
        return None
    try:
        return parse_bound(text, "date")
    except ValidationError:
        pass
    for fmt in EXTRA_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValidationError(f"Invalid date '{text}'", field="date")


class CsvImporter:
    def __init__(self, service: TransactionService, score_cutoff: int = 80):
        self.service = service
        self.score_cutoff = score_cutoff

    def read(self, file: BinaryIO) -> pd.DataFrame:
        try:
            df = pd.read_csv(file, dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise ValidationError(f"Unable to read CSV: {e}", field="file")

        df.columns = [str(c).strip().lower() for c in df.columns]
        kind_column = next((c for c in KIND_COLUMNS if c in df.columns), None)
        if kind_column is None or not REQUIRED_COLUMNS.issubset(df.columns):
            raise ValidationError(
                "CSV must have 'kind' (or 'type'), 'amount' and 'category' columns", field="file"
            )
        if kind_column != "kind":
            df = df.rename(columns={kind_column: "kind"})
        return df

    def import_file(self, owner_id: int, file: BinaryIO) -> ImportResult:
        df = self.read(file)
        result = ImportResult()
        pending = []

        for index, row in df.iterrows():
            row_number = index + 1
            try:
                kind = coerce_kind(row["kind"].strip().lower())
                category = resolve_category(row["category"], kind, self.score_cutoff)
                if category is None:
                    raise ValidationError(
                        f"'{row['category']}' does not match any {kind.value} category", field="category"
                    )
                pending.append(
                    self.service.build(
                        owner_id,
                        kind=kind,
                        amount=row["amount"],
                        category=category,
                        description=row.get("description") or None,
                        date=parse_import_date(row.get("date", "")),
                    )
                )
            except ValidationError as e:
                result.skipped += 1
                result.errors.append({"row": row_number, "field": e.field, "message": e.message})

        if pending:
            result.imported = self.service.store.insert_many(pending)

        logger.info(
            "CSV import finished",
            owner_id=owner_id,
            imported=result.imported,
            skipped=result.skipped,
        )
        return result
