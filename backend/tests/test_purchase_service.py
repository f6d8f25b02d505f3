from datetime import date
from decimal import Decimal

import pytest

from backoffice.core.errors import (
    BelowSoldQuantity,
    InsufficientStock,
    ItemHasSales,
    NotFound,
    OverpaymentError,
    ValidationFailed,
)
from backoffice.models import InvestorTransaction, Purchase, PurchaseItem, SupplierTransaction
from backoffice.schemas.party import InvestorCreate
from backoffice.schemas.purchase import PurchaseFilters, PurchaseOut
from backoffice.services import balance_service, inventory_service, investor_service, purchase_service
from helpers import item_payload, purchase_payload, update_payload_from


def _counts(db):
    return (
        db.query(Purchase).count(),
        db.query(PurchaseItem).count(),
        db.query(SupplierTransaction).count(),
        db.query(InvestorTransaction).filter(InvestorTransaction.purchase_id.isnot(None)).count(),
    )


# -------------------------------------------------
# CREATE
# -------------------------------------------------

def test_create_purchase_writes_items_and_linked_ledger_rows(db, tenant_id, supplier, funded_investor):
    payload = purchase_payload(
        supplier.supplier_id,
        funded_investor.investor_id,
        subtotal=Decimal("1000"),
        discount_value=Decimal("100"),
        shipping_value=Decimal("50"),
        total=Decimal("950"),
        amount_paid=Decimal("500"),
    )
    purchase = purchase_service.create_purchase(db, tenant_id, payload)

    assert purchase.currency == "DZD"
    assert len(purchase.items) == 1

    (supplier_txn,) = purchase.supplier_transactions
    assert supplier_txn.amount == Decimal("500")
    assert supplier_txn.note == f"Payment for Purchase #{purchase.purchase_id} (Invoice: INV-001)"
    assert supplier_txn.date == purchase.purchase_date

    (investor_txn,) = purchase.investor_transactions
    assert investor_txn.type == "Out"
    assert investor_txn.amount == Decimal("950")

    debt = balance_service.supplier_debt(db, tenant_id, supplier.supplier_id)
    assert debt.debt == Decimal("450")

    balances = balance_service.investor_balances(db, tenant_id, funded_investor.investor_id)
    assert balances.capital_out == Decimal("950")
    assert balances.available_cash == Decimal("9050")


def test_note_without_invoice_number(db, tenant_id, supplier, investor):
    purchase = purchase_service.create_purchase(
        db,
        tenant_id,
        purchase_payload(supplier.supplier_id, investor.investor_id, supplier_invoice_number=None),
    )
    assert purchase.supplier_transactions[0].note == f"Payment for Purchase #{purchase.purchase_id}"


def test_overpayment_is_rejected_before_any_write(db, tenant_id, supplier, investor):
    payload = purchase_payload(supplier.supplier_id, investor.investor_id, amount_paid=Decimal("1000.01"))
    with pytest.raises(OverpaymentError) as exc:
        purchase_service.create_purchase(db, tenant_id, payload)
    assert "amount_paid" in exc.value.errors
    assert _counts(db) == (0, 0, 0, 0)


def test_field_errors_are_reported_together(db, tenant_id, supplier, investor):
    payload = purchase_payload(
        supplier.supplier_id,
        investor.investor_id,
        items=[item_payload(), item_payload(name="  ", quantity=0), item_payload(unit_price="-1")],
        discount_value=Decimal("5000"),
        currency="EURO",
    )
    with pytest.raises(ValidationFailed) as exc:
        purchase_service.create_purchase(db, tenant_id, payload)
    errors = exc.value.errors
    assert set(errors) >= {
        "discount_value",
        "currency",
        "items.1.product_name",
        "items.1.quantity",
        "items.2.unit_price",
    }
    assert "items.0.quantity" not in errors


def test_purchase_needs_items(db, tenant_id, supplier, investor):
    payload = purchase_payload(supplier.supplier_id, investor.investor_id, items=[], total=Decimal("10"))
    with pytest.raises(ValidationFailed) as exc:
        purchase_service.create_purchase(db, tenant_id, payload)
    assert "items" in exc.value.errors


def test_foreign_supplier_is_not_found(db, tenant_id, other_tenant_id, supplier, investor):
    with pytest.raises(NotFound):
        purchase_service.create_purchase(
            db, other_tenant_id, purchase_payload(supplier.supplier_id, investor.investor_id)
        )
    assert _counts(db) == (0, 0, 0, 0)


def test_failure_on_third_item_rolls_back_everything(db, tenant_id, supplier, investor, monkeypatch):
    items = [item_payload(name=f"Product {n}", quantity=1) for n in range(1, 6)]
    original = inventory_service.create_item
    calls = {"n": 0}

    def flaky_create_item(session, purchase, payload):
        calls["n"] += 1
        if calls["n"] == 3:
            raise RuntimeError("disk full")
        return original(session, purchase, payload)

    monkeypatch.setattr(inventory_service, "create_item", flaky_create_item)
    with pytest.raises(RuntimeError):
        purchase_service.create_purchase(db, tenant_id, purchase_payload(supplier.supplier_id, investor.investor_id, items=items))

    assert _counts(db) == (0, 0, 0, 0)


# -------------------------------------------------
# UPDATE
# -------------------------------------------------

@pytest.fixture()
def purchase(db, tenant_id, supplier, funded_investor):
    return purchase_service.create_purchase(
        db,
        tenant_id,
        purchase_payload(
            supplier.supplier_id,
            funded_investor.investor_id,
            items=[
                item_payload("Olive oil 1L", quantity=10, barcode_prinsipal="6130000000017"),
                item_payload("Couscous 5kg", quantity=4, unit_price="250", sale_price="300"),
            ],
            amount_paid=Decimal("600"),
        ),
    )


def _sell(db, item, quantity):
    inventory_service.reserve_sale(db, item.purchase_item_id, quantity)
    db.commit()


def test_update_mirrors_amounts_onto_linked_rows(db, tenant_id, purchase):
    payload = update_payload_from(
        purchase,
        total=Decimal("1900"),
        amount_paid=Decimal("1900"),
        purchase_date=date(2025, 10, 3),
        supplier_invoice_number="INV-777",
    )
    updated = purchase_service.update_purchase(db, tenant_id, purchase.purchase_id, payload)

    assert updated.total == Decimal("1900")
    (supplier_txn,) = updated.supplier_transactions
    assert supplier_txn.amount == Decimal("1900")
    assert supplier_txn.date == date(2025, 10, 3)
    assert supplier_txn.note.endswith("(Invoice: INV-777)")
    (investor_txn,) = updated.investor_transactions
    assert investor_txn.amount == Decimal("1900")


def test_update_recreates_missing_linked_rows(db, tenant_id, purchase):
    db.query(SupplierTransaction).filter(SupplierTransaction.purchase_id == purchase.purchase_id).delete()
    db.commit()

    updated = purchase_service.update_purchase(db, tenant_id, purchase.purchase_id, update_payload_from(purchase))
    assert [t.amount for t in updated.supplier_transactions] == [Decimal("0")]


def test_update_diffs_items_and_keeps_generated_barcode(db, tenant_id, purchase):
    oil, couscous = purchase.items
    original_barcode = oil.barcode_generated
    payload = update_payload_from(
        purchase,
        items=[
            item_payload("Olive oil 1L (promo)", quantity=12, id=oil.purchase_item_id, barcode_prinsipal="999"),
            item_payload("Dates 1kg", quantity=2, unit_price="50", sale_price="80"),
        ],
    )
    updated = purchase_service.update_purchase(db, tenant_id, purchase.purchase_id, payload)

    names = [item.product_name for item in updated.items]
    assert names == ["Olive oil 1L (promo)", "Dates 1kg"]
    kept = updated.items[0]
    assert kept.purchase_item_id == oil.purchase_item_id
    assert kept.barcode_prinsipal == "999"
    assert kept.barcode_generated == original_barcode
    assert kept.quantity == 12
    assert db.get(PurchaseItem, couscous.purchase_item_id) is None


def test_update_below_sold_quantity_aborts_everything(db, tenant_id, purchase):
    oil, couscous = purchase.items
    _sell(db, couscous, 3)

    payload = update_payload_from(
        purchase,
        items=[
            item_payload("Renamed oil", quantity=10, id=oil.purchase_item_id),
            item_payload("Couscous 5kg", quantity=2, unit_price="250", sale_price="300", id=couscous.purchase_item_id),
        ],
        total=Decimal("2500"),
    )
    with pytest.raises(BelowSoldQuantity) as exc:
        purchase_service.update_purchase(db, tenant_id, purchase.purchase_id, payload)
    assert "items.1.quantity" in exc.value.errors

    db.expire_all()
    assert db.get(PurchaseItem, oil.purchase_item_id).product_name == "Olive oil 1L"
    assert db.get(Purchase, purchase.purchase_id).total == Decimal("2000")


def test_update_to_exactly_sold_quantity_is_allowed(db, tenant_id, purchase):
    oil, couscous = purchase.items
    _sell(db, oil, 4)
    payload = update_payload_from(
        purchase,
        items=[
            item_payload("Olive oil 1L", quantity=4, id=oil.purchase_item_id),
            item_payload("Couscous 5kg", quantity=4, unit_price="250", sale_price="300", id=couscous.purchase_item_id),
        ],
    )
    updated = purchase_service.update_purchase(db, tenant_id, purchase.purchase_id, payload)
    assert updated.items[0].quantity == 4
    assert inventory_service.available_quantity(updated.items[0]) == 0


def test_update_cannot_drop_sold_item(db, tenant_id, purchase):
    oil, couscous = purchase.items
    _sell(db, couscous, 1)
    payload = update_payload_from(purchase, items=[item_payload("Olive oil 1L", quantity=10, id=oil.purchase_item_id)])
    with pytest.raises(ItemHasSales):
        purchase_service.update_purchase(db, tenant_id, purchase.purchase_id, payload)
    db.expire_all()
    assert db.get(PurchaseItem, couscous.purchase_item_id) is not None


def test_update_cannot_move_sold_stock_to_another_investor(db, tenant_id, funded_investor, purchase):
    oil, _ = purchase.items
    _sell(db, oil, 3)
    other = investor_service.create_investor(db, tenant_id, InvestorCreate(name="Samir"))

    with pytest.raises(ValidationFailed) as exc:
        purchase_service.update_purchase(
            db, tenant_id, purchase.purchase_id, update_payload_from(purchase, investor_id=other.investor_id)
        )
    assert "investor_id" in exc.value.errors

    db.expire_all()
    assert db.get(Purchase, purchase.purchase_id).investor_id == funded_investor.investor_id
    assert balance_service.investor_balances(db, tenant_id, other.investor_id).capital_out == Decimal("0")


def test_update_moves_unsold_purchase_to_another_investor(db, tenant_id, purchase):
    other = investor_service.create_investor(db, tenant_id, InvestorCreate(name="Samir"))
    updated = purchase_service.update_purchase(
        db, tenant_id, purchase.purchase_id, update_payload_from(purchase, investor_id=other.investor_id)
    )
    assert updated.investor_id == other.investor_id
    (investor_txn,) = updated.investor_transactions
    assert investor_txn.investor_id == other.investor_id


def test_update_rejects_item_from_another_purchase(db, tenant_id, supplier, investor, purchase):
    other = purchase_service.create_purchase(db, tenant_id, purchase_payload(supplier.supplier_id, investor.investor_id))
    foreign_item = other.items[0]
    payload = update_payload_from(
        purchase,
        items=[item_payload("Hijack", quantity=1, id=foreign_item.purchase_item_id)],
    )
    with pytest.raises(ValidationFailed) as exc:
        purchase_service.update_purchase(db, tenant_id, purchase.purchase_id, payload)
    assert "items.0.id" in exc.value.errors


def test_update_overpayment(db, tenant_id, purchase):
    with pytest.raises(OverpaymentError):
        purchase_service.update_purchase(
            db, tenant_id, purchase.purchase_id, update_payload_from(purchase, amount_paid=Decimal("5000"))
        )


def test_update_replaces_invoice_file_after_commit(db, tenant_id, purchase, storage):
    (storage.root / "old.pdf").write_bytes(b"old")
    (storage.root / "new.pdf").write_bytes(b"new")
    purchase_service.update_purchase(
        db, tenant_id, purchase.purchase_id, update_payload_from(purchase, invoice_image="old.pdf"), storage=storage
    )

    updated = purchase_service.update_purchase(
        db, tenant_id, purchase.purchase_id, update_payload_from(purchase, invoice_image="new.pdf"), storage=storage
    )
    assert updated.invoice_image == "new.pdf"
    assert not (storage.root / "old.pdf").exists()
    assert (storage.root / "new.pdf").exists()

    kept = purchase_service.update_purchase(
        db, tenant_id, purchase.purchase_id, update_payload_from(purchase, invoice_image=None), storage=storage
    )
    assert kept.invoice_image == "new.pdf"


# -------------------------------------------------
# DELETE / READ
# -------------------------------------------------

def test_delete_purchase_removes_items_ledger_rows_and_file(db, tenant_id, purchase, storage):
    (storage.root / "scan.png").write_bytes(b"png")
    purchase_service.update_purchase(
        db, tenant_id, purchase.purchase_id, update_payload_from(purchase, invoice_image="scan.png"), storage=storage
    )

    purchase_service.delete_purchase(db, tenant_id, purchase.purchase_id, storage=storage)

    assert db.query(Purchase).count() == 0
    assert db.query(PurchaseItem).count() == 0
    assert db.query(SupplierTransaction).count() == 0
    assert db.query(InvestorTransaction).filter(InvestorTransaction.purchase_id.isnot(None)).count() == 0
    assert not (storage.root / "scan.png").exists()


def test_delete_purchase_with_missing_invoice_file_still_succeeds(db, tenant_id, purchase, storage):
    purchase_service.update_purchase(
        db, tenant_id, purchase.purchase_id, update_payload_from(purchase, invoice_image="gone.pdf"), storage=storage
    )
    purchase_service.delete_purchase(db, tenant_id, purchase.purchase_id, storage=storage)
    assert db.query(Purchase).count() == 0


def test_delete_purchase_with_sold_items_fails(db, tenant_id, purchase):
    _sell(db, purchase.items[0], 1)
    with pytest.raises(ItemHasSales):
        purchase_service.delete_purchase(db, tenant_id, purchase.purchase_id)
    assert db.query(Purchase).count() == 1


def test_other_tenant_cannot_see_or_delete(db, other_tenant_id, purchase):
    with pytest.raises(NotFound):
        purchase_service.get_purchase(db, other_tenant_id, purchase.purchase_id)
    with pytest.raises(NotFound):
        purchase_service.delete_purchase(db, other_tenant_id, purchase.purchase_id)


def test_purchase_out_exposes_amount_paid_and_sold_percentage(db, tenant_id, purchase):
    _sell(db, purchase.items[0], 7)
    out = PurchaseOut.model_validate(purchase_service.get_purchase(db, tenant_id, purchase.purchase_id))
    assert out.amount_paid == Decimal("600")
    assert out.sold_percentage == 50.0
    dumped = out.model_dump()
    assert "supplier_transactions" not in dumped
    assert dumped["items"][0]["available_quantity"] == 3


def test_list_purchases_filters_and_summarises(db, tenant_id, supplier, investor, purchase):
    purchase_service.create_purchase(
        db,
        tenant_id,
        purchase_payload(
            supplier.supplier_id,
            investor.investor_id,
            items=[item_payload("Semolina", quantity=2, unit_price="80", sale_price="100")],
            shipping_value=Decimal("20"),
            total=Decimal("180"),
            supplier_invoice_number="INV-900",
        ),
    )
    _sell(db, purchase.items[0], 7)

    rows, summary = purchase_service.list_purchases(db, tenant_id, PurchaseFilters())
    assert summary.total_purchases == 2
    assert summary.grand_total == Decimal("2180")
    assert summary.total_shipping == Decimal("20")

    rows, summary = purchase_service.list_purchases(db, tenant_id, PurchaseFilters(search="semol"))
    assert [r.supplier_invoice_number for r in rows] == ["INV-900"]

    rows, _ = purchase_service.list_purchases(db, tenant_id, PurchaseFilters(sold_percentage_min=40))
    assert [r.purchase_id for r in rows] == [purchase.purchase_id]

    rows, summary = purchase_service.list_purchases(db, tenant_id, PurchaseFilters(total_max=Decimal("500")))
    assert summary.total_purchases == 1


def test_fully_sold_item_rejects_further_reservation(db, tenant_id, purchase):
    oil = purchase.items[0]
    _sell(db, oil, 10)
    with pytest.raises(InsufficientStock):
        inventory_service.reserve_sale(db, oil.purchase_item_id, 1)
