# backend/app/api/deps.py
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from backend.app.config import Settings, get_settings
from backend.app.db import get_db
from backend.app.errors import AuthenticationError
from backend.app.services.aggregation import AggregationEngine
from backend.app.services.identity import IdentityService
from backend.app.services.importer import CsvImporter
from backend.app.services.transactions import TransactionService
from backend.app.store import LedgerStore


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise AuthenticationError("No token, authorization denied")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Token is invalid")
    return token.strip()


def get_identity(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> IdentityService:
    return IdentityService(db, session_ttl_hours=settings.session_ttl_hours)


def get_current_user(
    token: str = Depends(bearer_token), identity: IdentityService = Depends(get_identity)
):
    return identity.resolve(token)


def get_owner_id(user=Depends(get_current_user)) -> int:
    return user.id


def get_store(db: Session = Depends(get_db)) -> LedgerStore:
    return LedgerStore(db)


def get_transaction_service(store: LedgerStore = Depends(get_store)) -> TransactionService:
    return TransactionService(store)


def get_aggregation_engine(
    store: LedgerStore = Depends(get_store), settings: Settings = Depends(get_settings)
) -> AggregationEngine:
    return AggregationEngine(store, trend_months=settings.trend_months)


def get_importer(
    service: TransactionService = Depends(get_transaction_service),
    settings: Settings = Depends(get_settings),
) -> CsvImporter:
    return CsvImporter(service, score_cutoff=settings.import_category_score_cutoff)
