from datetime import date, timedelta
from decimal import Decimal

import pytest

from backoffice.core.errors import LinkedRecordImmutable, NotFound, ValidationFailed
from backoffice.models import InvestorTransaction, SupplierTransaction
from backoffice.schemas.ledger import InvestorTransactionIn, SupplierTransactionIn, TransactionFilters
from backoffice.services import ledger_service, purchase_service
from helpers import PURCHASE_DATE, purchase_payload


def _supplier_payment(supplier_id, amount="300", **overrides):
    data = dict(supplier_id=supplier_id, date=PURCHASE_DATE, amount=Decimal(amount), note="Cash")
    data.update(overrides)
    return SupplierTransactionIn(**data)


def _capital(investor_id, type_="In", amount="500", **overrides):
    data = dict(investor_id=investor_id, date=PURCHASE_DATE, type=type_, amount=Decimal(amount))
    data.update(overrides)
    return InvestorTransactionIn(**data)


@pytest.fixture()
def linked_purchase(db, tenant_id, supplier, funded_investor):
    return purchase_service.create_purchase(
        db,
        tenant_id,
        purchase_payload(supplier.supplier_id, funded_investor.investor_id, amount_paid=Decimal("400")),
    )


def test_manual_supplier_payment(db, tenant_id, supplier):
    txn = ledger_service.create_supplier_transaction(db, tenant_id, _supplier_payment(supplier.supplier_id))
    assert txn.transaction_id is not None
    assert txn.amount == Decimal("300")
    assert txn.purchase_id is None
    assert not txn.is_linked


def test_manual_entries_cannot_be_dated_in_the_future(db, tenant_id, supplier, investor):
    tomorrow = date.today() + timedelta(days=1)
    with pytest.raises(ValidationFailed) as exc:
        ledger_service.create_supplier_transaction(
            db, tenant_id, _supplier_payment(supplier.supplier_id, date=tomorrow)
        )
    assert "date" in exc.value.errors

    with pytest.raises(ValidationFailed) as exc:
        ledger_service.create_investor_transaction(db, tenant_id, _capital(investor.investor_id, date=tomorrow))
    assert "date" in exc.value.errors


def test_supplier_payment_rejects_negative_amount_and_foreign_supplier(db, tenant_id, other_tenant_id, supplier):
    with pytest.raises(ValidationFailed) as exc:
        ledger_service.create_supplier_transaction(
            db, other_tenant_id, _supplier_payment(supplier.supplier_id, amount="-1")
        )
    assert set(exc.value.errors) == {"amount", "supplier_id"}
    assert db.query(SupplierTransaction).count() == 0


@pytest.mark.parametrize("amount", ["0", "-10", "1000000000000"])
def test_investor_amount_must_be_positive_and_bounded(db, tenant_id, investor, amount):
    with pytest.raises(ValidationFailed) as exc:
        ledger_service.create_investor_transaction(db, tenant_id, _capital(investor.investor_id, amount=amount))
    assert "amount" in exc.value.errors


def test_investor_type_must_be_in_or_out(db, tenant_id, investor):
    with pytest.raises(ValidationFailed) as exc:
        ledger_service.create_investor_transaction(db, tenant_id, _capital(investor.investor_id, type_="Sideways"))
    assert "type" in exc.value.errors


def test_update_and_delete_manual_transaction(db, tenant_id, investor):
    txn = ledger_service.create_investor_transaction(db, tenant_id, _capital(investor.investor_id))
    updated = ledger_service.update_transaction(
        db,
        tenant_id,
        ledger_service.INVESTOR,
        txn.transaction_id,
        _capital(investor.investor_id, type_="Out", amount="120", note="  Withdrawal  "),
    )
    assert updated.type == "Out"
    assert updated.amount == Decimal("120")
    assert updated.note == "Withdrawal"

    ledger_service.delete_transaction(db, tenant_id, ledger_service.INVESTOR, txn.transaction_id)
    with pytest.raises(NotFound):
        ledger_service.get_transaction(db, tenant_id, ledger_service.INVESTOR, txn.transaction_id)


def test_update_with_wrong_payload_kind_is_rejected(db, tenant_id, supplier, investor):
    txn = ledger_service.create_supplier_transaction(db, tenant_id, _supplier_payment(supplier.supplier_id))
    with pytest.raises(ValidationFailed):
        ledger_service.update_transaction(
            db, tenant_id, ledger_service.SUPPLIER, txn.transaction_id, _capital(investor.investor_id)
        )


def test_linked_rows_cannot_be_edited_or_deleted(db, tenant_id, supplier, linked_purchase):
    supplier_txn = linked_purchase.supplier_transactions[0]
    investor_txn = linked_purchase.investor_transactions[0]
    assert supplier_txn.is_linked and investor_txn.is_linked

    with pytest.raises(LinkedRecordImmutable) as exc:
        ledger_service.update_transaction(
            db,
            tenant_id,
            ledger_service.SUPPLIER,
            supplier_txn.transaction_id,
            _supplier_payment(supplier.supplier_id, amount="1"),
        )
    assert "purchase" in str(exc.value)

    with pytest.raises(LinkedRecordImmutable):
        ledger_service.delete_transaction(db, tenant_id, ledger_service.INVESTOR, investor_txn.transaction_id)

    db.expire_all()
    assert db.get(SupplierTransaction, supplier_txn.transaction_id).amount == Decimal("400")
    assert db.get(InvestorTransaction, investor_txn.transaction_id) is not None


def test_transactions_are_tenant_scoped(db, tenant_id, other_tenant_id, supplier):
    txn = ledger_service.create_supplier_transaction(db, tenant_id, _supplier_payment(supplier.supplier_id))
    with pytest.raises(NotFound):
        ledger_service.get_transaction(db, other_tenant_id, ledger_service.SUPPLIER, txn.transaction_id)
    with pytest.raises(NotFound):
        ledger_service.delete_transaction(db, other_tenant_id, ledger_service.SUPPLIER, txn.transaction_id)


def test_unknown_kind_is_rejected(db, tenant_id):
    with pytest.raises(ValidationFailed):
        ledger_service.get_transaction(db, tenant_id, "customer", 1)


def test_supplier_listing_hides_unpaid_purchase_rows(db, tenant_id, supplier, funded_investor):
    purchase_service.create_purchase(db, tenant_id, purchase_payload(supplier.supplier_id, funded_investor.investor_id))
    ledger_service.create_supplier_transaction(db, tenant_id, _supplier_payment(supplier.supplier_id, amount="200"))
    ledger_service.create_supplier_transaction(db, tenant_id, _supplier_payment(supplier.supplier_id, amount="100"))

    rows, summary = ledger_service.list_supplier_transactions(db, tenant_id, TransactionFilters())
    assert db.query(SupplierTransaction).count() == 3
    assert len(rows) == 2
    assert summary.total_transactions == 2
    assert summary.total_amount == Decimal("300")
    assert summary.average_amount == Decimal("150.00")
    assert summary.max_amount == Decimal("200")
    assert summary.min_amount == Decimal("100")


def test_supplier_listing_search_matches_supplier_and_note(db, tenant_id, supplier):
    ledger_service.create_supplier_transaction(
        db, tenant_id, _supplier_payment(supplier.supplier_id, note="Advance for October")
    )
    rows, _ = ledger_service.list_supplier_transactions(db, tenant_id, TransactionFilters(search="baraka"))
    assert len(rows) == 1
    rows, _ = ledger_service.list_supplier_transactions(db, tenant_id, TransactionFilters(search="october"))
    assert len(rows) == 1
    rows, _ = ledger_service.list_supplier_transactions(db, tenant_id, TransactionFilters(search="nothing"))
    assert rows == []


def test_investor_listing_filters_by_type_and_amount(db, tenant_id, funded_investor):
    ledger_service.create_investor_transaction(db, tenant_id, _capital(funded_investor.investor_id, type_="Out"))
    ledger_service.create_investor_transaction(db, tenant_id, _capital(funded_investor.investor_id, amount="50"))

    rows, summary = ledger_service.list_investor_transactions(db, tenant_id, TransactionFilters(type="In"))
    assert sorted(r.amount for r in rows) == [Decimal("50"), Decimal("10000")]
    assert summary.total_amount == Decimal("10050")

    rows, _ = ledger_service.list_investor_transactions(
        db, tenant_id, TransactionFilters(amount_min=Decimal("100"), amount_max=Decimal("1000"))
    )
    assert [r.type for r in rows] == ["Out"]

    with pytest.raises(ValidationFailed):
        ledger_service.list_investor_transactions(db, tenant_id, TransactionFilters(type="Both"))


def test_listing_limit_is_clamped(db, tenant_id, funded_investor):
    for amount in ("10", "20", "30"):
        ledger_service.create_investor_transaction(db, tenant_id, _capital(funded_investor.investor_id, amount=amount))
    rows, summary = ledger_service.list_investor_transactions(db, tenant_id, TransactionFilters(limit=0))
    assert len(rows) == 1
    assert summary.total_transactions == 4
