from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from backend.app.errors import NotFoundError, StoreError, ValidationError
from backend.app.models.transaction_model import Category, Kind, categories_for
from backend.app.store import LedgerStore, TransactionFilters
from backend.app.window import DateWindow

from tests.conftest import NOW

OWNER = 1
OTHER_OWNER = 2


class TestCreate:
    def test_create_defaults_date_to_now(self, service):
        t = service.create(OWNER, "expense", "12.50", "food", description="  lunch  ")
        assert t.id is not None
        assert t.kind == Kind.EXPENSE
        assert t.category == Category.FOOD
        assert t.amount == Decimal("12.50")
        assert t.description == "lunch"
        assert t.date == NOW
        assert t.created_at == NOW

    def test_create_keeps_supplied_date(self, service):
        t = service.create(OWNER, "income", 1000, "salary", date="2026-09-30")
        assert t.date == datetime(2026, 9, 30)
        assert t.created_at == NOW

    def test_zero_amount_is_allowed(self, service):
        assert service.create(OWNER, "expense", 0, "rent").amount == Decimal("0.00")

    def test_created_category_always_matches_kind(self, service):
        for kind in Kind:
            for category in categories_for(kind):
                t = service.create(OWNER, kind, "1", category)
                assert t.category in categories_for(t.kind)

    @pytest.mark.parametrize(
        "kind,amount,category,field",
        [
            (None, "10", "food", "kind"),
            ("expense", None, "food", "amount"),
            ("expense", "10", None, "category"),
            ("transfer", "10", "food", "kind"),
            ("expense", "10", "groceries", "category"),
            ("expense", "-0.01", "food", "amount"),
            ("expense", "abc", "food", "amount"),
            ("expense", "1.005", "food", "amount"),
            ("income", "10", "food", "category"),
            ("expense", "10", "salary", "category"),
        ],
    )
    def test_invalid_input_is_rejected(self, service, kind, amount, category, field):
        with pytest.raises(ValidationError) as exc:
            service.create(OWNER, kind, amount, category)
        assert exc.value.field == field

    def test_description_length_is_limited(self, service):
        service.create(OWNER, "expense", "1", "food", description="x" * 200)
        with pytest.raises(ValidationError) as exc:
            service.create(OWNER, "expense", "1", "food", description="x" * 201)
        assert exc.value.field == "description"


class TestUpdate:
    def test_only_provided_fields_change(self, service):
        t = service.create(OWNER, "expense", "20", "food", description="dinner")
        updated = service.update(t.id, OWNER, {"amount": "25.75"})
        assert updated.amount == Decimal("25.75")
        assert updated.category == Category.FOOD
        assert updated.description == "dinner"

    def test_description_can_be_cleared(self, service):
        t = service.create(OWNER, "expense", "20", "food", description="dinner")
        assert service.update(t.id, OWNER, {"description": None}).description is None
        t2 = service.create(OWNER, "expense", "20", "food", description="dinner")
        assert service.update(t2.id, OWNER, {"description": ""}).description is None

    def test_kind_change_requires_matching_category(self, service):
        t = service.create(OWNER, "expense", "20", "food")
        with pytest.raises(ValidationError):
            service.update(t.id, OWNER, {"kind": "income"})
        updated = service.update(t.id, OWNER, {"kind": "income", "category": "freelance"})
        assert updated.kind == Kind.INCOME
        assert updated.category == Category.FREELANCE

    def test_rejected_update_leaves_record_untouched(self, service, store):
        t = service.create(OWNER, "expense", "20", "food")
        with pytest.raises(ValidationError):
            service.update(t.id, OWNER, {"amount": "-1"})
        assert store.get(OWNER, t.id).amount == Decimal("20.00")

    @pytest.mark.parametrize(
        "changes",
        [
            {"amount": "5", "description": "x" * 201},
            {"kind": "income", "category": "salary", "date": "not-a-date"},
        ],
    )
    def test_invalid_later_field_leaves_earlier_fields_untouched(self, service, store, changes):
        t = service.create(OWNER, "expense", "20", "food", description="lunch")
        with pytest.raises(ValidationError):
            service.update(t.id, OWNER, changes)

        stored = store.get(OWNER, t.id)
        assert stored.amount == Decimal("20.00")
        assert stored.kind == Kind.EXPENSE
        assert stored.category == Category.FOOD
        assert stored.description == "lunch"

    def test_zero_amount_update_is_applied(self, service):
        t = service.create(OWNER, "expense", "20", "food")
        assert service.update(t.id, OWNER, {"amount": 0}).amount == Decimal("0.00")

    def test_foreign_and_missing_ids_look_the_same(self, service):
        t = service.create(OWNER, "expense", "20", "food")
        with pytest.raises(NotFoundError) as foreign:
            service.update(t.id, OTHER_OWNER, {"amount": "1"})
        with pytest.raises(NotFoundError) as missing:
            service.update(9999, OTHER_OWNER, {"amount": "1"})
        assert foreign.value.to_dict() == missing.value.to_dict()


class TestDelete:
    def test_delete_removes_record(self, service, store):
        t = service.create(OWNER, "expense", "20", "food")
        tid = t.id
        service.delete(tid, OWNER)
        assert store.get(OWNER, tid) is None
        assert service.list_transactions(OWNER).total == 0

    def test_delete_of_foreign_record_is_not_found(self, service, store):
        t = service.create(OWNER, "expense", "20", "food")
        with pytest.raises(NotFoundError):
            service.delete(t.id, OTHER_OWNER)
        assert store.get(OWNER, t.id) is not None

    def test_delete_twice(self, service):
        t = service.create(OWNER, "expense", "20", "food")
        tid = t.id
        service.delete(tid, OWNER)
        with pytest.raises(NotFoundError):
            service.delete(tid, OWNER)


class TestList:
    def test_pagination(self, service):
        for i in range(25):
            service.create(OWNER, "expense", "1", "food", date=NOW - timedelta(days=i))

        first = service.list_transactions(OWNER, page=1, page_size=10)
        assert first.total == 25
        assert first.total_pages == 3
        assert len(first.items) == 10

        last = service.list_transactions(OWNER, page=3, page_size=10)
        assert len(last.items) == 5

        beyond = service.list_transactions(OWNER, page=4, page_size=10)
        assert beyond.items == []
        assert beyond.current_page == 4
        assert beyond.total_pages == 3

    def test_empty_ledger(self, service):
        page = service.list_transactions(OWNER)
        assert page.total == 0 and page.total_pages == 0 and page.items == []

    def test_sorted_newest_first_with_ties_in_insertion_order(self, service):
        a = service.create(OWNER, "expense", "1", "food", date="2026-10-01")
        b = service.create(OWNER, "expense", "2", "food", date="2026-10-05")
        c = service.create(OWNER, "expense", "3", "food", date="2026-10-01")
        items = service.list_transactions(OWNER).items
        assert [t.id for t in items] == [b.id, a.id, c.id]

    def test_filters_are_combined(self, service):
        service.create(OWNER, "expense", "1", "food", date="2026-09-15")
        service.create(OWNER, "expense", "2", "food", date="2026-10-02")
        service.create(OWNER, "expense", "3", "rent", date="2026-10-03")
        service.create(OWNER, "income", "4", "salary", date="2026-10-04")
        service.create(OTHER_OWNER, "expense", "5", "food", date="2026-10-02")

        filters = TransactionFilters(
            kind=Kind.EXPENSE,
            category=Category.FOOD,
            window=DateWindow.from_params("2026-10-01", "2026-10-31"),
        )
        page = service.list_transactions(OWNER, filters)
        assert [t.amount for t in page.items] == [Decimal("2.00")]

    def test_end_date_is_inclusive(self, service):
        service.create(OWNER, "expense", "1", "food", date="2026-10-31T18:30:00")
        window = DateWindow.from_params(None, "2026-10-31")
        assert service.list_transactions(OWNER, TransactionFilters(window=window)).total == 1

    def test_invalid_page(self, service):
        with pytest.raises(ValidationError):
            service.list_transactions(OWNER, page=0)


class TestStoreErrors:
    def test_store_failures_propagate_as_store_error(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        store = LedgerStore(db)
        with pytest.raises(StoreError):
            store.count(OWNER, TransactionFilters())

    def test_failed_write_rolls_back(self):
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with pytest.raises(StoreError):
            LedgerStore(db).insert(MagicMock())
        db.rollback.assert_called_once()
