import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Query, Session, selectinload

from backoffice.core.config import settings
from backoffice.core.database import atomic
from backoffice.core.errors import BelowSoldQuantity, ItemHasSales, OverpaymentError, ValidationFailed
from backoffice.models.investor import Investor
from backoffice.models.ledger import TRANSACTION_OUT
from backoffice.models.purchase import Purchase, PurchaseItem
from backoffice.models.supplier import Supplier
from backoffice.schemas.ledger import InvestorTransactionIn, SupplierTransactionIn
from backoffice.schemas.purchase import (
    PurchaseCreate,
    PurchaseFilters,
    PurchaseItemIn,
    PurchaseSummary,
    PurchaseUpdate,
)
from backoffice.services import inventory_service, ledger_service
from backoffice.services.invoice_storage import InvoiceStorage, invoice_storage
from backoffice.services.ownership import get_owned
from backoffice.utils.text_cleaner import clean_optional, normalize_whitespace
from backoffice.utils.validation import FieldErrors, resolve_currency

logger = logging.getLogger(__name__)

TEXT_MAX_LENGTH = 255


# -------------------------------------------------
# VALIDATION
# -------------------------------------------------

def _validate_item(errors: FieldErrors, index: int, item: PurchaseItemIn) -> None:
    prefix = f"items.{index}"
    errors.check(bool(normalize_whitespace(item.product_name)), f"{prefix}.product_name", "Product name is required.")
    errors.max_length(item.product_name, f"{prefix}.product_name", TEXT_MAX_LENGTH)
    errors.max_length(item.barcode_prinsipal, f"{prefix}.barcode_prinsipal", TEXT_MAX_LENGTH)
    errors.check(item.quantity is not None and item.quantity >= 1, f"{prefix}.quantity", "Quantity must be at least 1.")
    errors.non_negative(item.unit_price, f"{prefix}.unit_price")
    errors.non_negative(item.sale_price, f"{prefix}.sale_price")


def _validate_purchase(db: Session, tenant_id: int, payload: PurchaseCreate) -> str:
    """
    Check every field before anything is written and return the currency to store.

    Field problems are reported together; supplier or investor outside the
    tenant raise NotFound; an overpayment on an otherwise valid payload
    raises OverpaymentError.
    """
    errors = FieldErrors()

    for field in ("subtotal", "discount_value", "shipping_value", "total", "amount_paid"):
        errors.non_negative(getattr(payload, field), field)
    if payload.total is not None and payload.total == 0:
        errors.add("total", "Total must be greater than zero.")
    if (
        payload.discount_value is not None
        and payload.subtotal is not None
        and payload.discount_value > payload.subtotal
    ):
        errors.add("discount_value", "Discount cannot exceed the subtotal.")

    for field in ("supplier_invoice_number", "discount_reason", "shipping_note", "invoice_image"):
        errors.max_length(getattr(payload, field), field, TEXT_MAX_LENGTH)
    currency = resolve_currency(payload.currency, settings.DEFAULT_CURRENCY, errors)

    if not payload.items:
        errors.add("items", "At least one item is required.")
    for index, item in enumerate(payload.items):
        _validate_item(errors, index, item)

    overpaid = (
        payload.amount_paid is not None
        and payload.total is not None
        and payload.amount_paid > payload.total
    )
    if errors:
        if overpaid:
            errors.add("amount_paid", "Amount paid cannot exceed total amount")
        errors.raise_if_any()

    get_owned(db, Supplier, payload.supplier_id, tenant_id)
    get_owned(db, Investor, payload.investor_id, tenant_id)

    if overpaid:
        raise OverpaymentError()
    return currency


def _check_investor_change(purchase: Purchase, investor_id: int) -> None:
    if investor_id == purchase.investor_id:
        return
    if any(item.quantity_selled > 0 for item in purchase.items):
        raise ValidationFailed(
            {"investor_id": "The investor cannot be changed once items of this purchase have been sold."}
        )


def _plan_item_changes(
    purchase: Purchase,
    items: List[PurchaseItemIn],
) -> Tuple[List[Tuple[int, PurchaseItem, PurchaseItemIn]], List[PurchaseItemIn], List[PurchaseItem]]:
    """Split incoming items into (updates, creates, deletes) after checking sold quantities."""
    existing: Dict[int, PurchaseItem] = {item.purchase_item_id: item for item in purchase.items}
    errors = FieldErrors()
    seen = set()
    for index, incoming in enumerate(items):
        if incoming.id is None:
            continue
        if incoming.id not in existing:
            errors.add(f"items.{index}.id", "This item does not belong to the purchase.")
        elif incoming.id in seen:
            errors.add(f"items.{index}.id", "This item is listed more than once.")
        seen.add(incoming.id)
    errors.raise_if_any()

    updates = []
    creates = []
    for index, incoming in enumerate(items):
        if incoming.id is None:
            creates.append(incoming)
            continue
        current = existing[incoming.id]
        if incoming.quantity < current.quantity_selled:
            raise BelowSoldQuantity(f"items.{index}.quantity", current.product_name, current.quantity_selled)
        updates.append((index, current, incoming))

    deletes = [item for item_id, item in existing.items() if item_id not in seen]
    sold = [item for item in deletes if item.quantity_selled > 0]
    if sold:
        names = ", ".join(f"{item.product_name} (Sold: {item.quantity_selled})" for item in sold)
        raise ItemHasSales(f"Cannot delete items that have been sold: {names}")
    return updates, creates, deletes


def _apply_header(purchase: Purchase, payload: PurchaseCreate, currency: str) -> None:
    purchase.supplier_id = payload.supplier_id
    purchase.investor_id = payload.investor_id
    purchase.supplier_invoice_number = clean_optional(payload.supplier_invoice_number)
    purchase.purchase_date = payload.purchase_date
    purchase.subtotal = payload.subtotal
    purchase.discount_value = payload.discount_value
    purchase.discount_reason = clean_optional(payload.discount_reason)
    purchase.shipping_value = payload.shipping_value
    purchase.shipping_note = clean_optional(payload.shipping_note)
    purchase.total = payload.total
    purchase.currency = currency
    purchase.note = clean_optional(payload.note)


# -------------------------------------------------
# WRITES
# -------------------------------------------------

def create_purchase(db: Session, tenant_id: int, payload: PurchaseCreate) -> Purchase:
    """
    Create a purchase with its items and linked ledger rows in one transaction.

    The supplier row records ``amount_paid``; the investor row is an ``Out``
    of the purchase total.
    """
    currency = _validate_purchase(db, tenant_id, payload)

    with atomic(db):
        purchase = Purchase(user_id=tenant_id, invoice_image=clean_optional(payload.invoice_image))
        _apply_header(purchase, payload, currency)
        db.add(purchase)
        db.flush()

        for item in payload.items:
            inventory_service.create_item(db, purchase, item)

        note = ledger_service.purchase_payment_note(purchase.purchase_id, purchase.supplier_invoice_number)
        ledger_service.record_supplier_transaction(
            db,
            tenant_id,
            SupplierTransactionIn(
                supplier_id=purchase.supplier_id,
                date=purchase.purchase_date,
                amount=payload.amount_paid,
                note=note,
            ),
            purchase_id=purchase.purchase_id,
        )
        ledger_service.record_investor_transaction(
            db,
            tenant_id,
            InvestorTransactionIn(
                investor_id=purchase.investor_id,
                date=purchase.purchase_date,
                type=TRANSACTION_OUT,
                amount=purchase.total,
                note=note,
            ),
            purchase_id=purchase.purchase_id,
        )

    db.refresh(purchase)
    logger.info(
        "Purchase %s created with %s items (total %s, paid %s)",
        purchase.purchase_id,
        len(purchase.items),
        purchase.total,
        payload.amount_paid,
    )
    return purchase


def update_purchase(
    db: Session,
    tenant_id: int,
    purchase_id: int,
    payload: PurchaseUpdate,
    storage: Optional[InvoiceStorage] = None,
) -> Purchase:
    """
    Replace a purchase's header and items.

    Items carrying an ``id`` are updated, items without one are created and
    existing items missing from the payload are deleted. Nothing is written
    unless every check passes.
    """
    storage = storage or invoice_storage
    purchase = get_owned(db, Purchase, purchase_id, tenant_id)
    currency = _validate_purchase(db, tenant_id, payload)
    _check_investor_change(purchase, payload.investor_id)
    updates, creates, deletes = _plan_item_changes(purchase, payload.items)

    old_invoice = purchase.invoice_image
    new_invoice = clean_optional(payload.invoice_image)
    replace_invoice = bool(new_invoice) and new_invoice != old_invoice

    with atomic(db):
        _apply_header(purchase, payload, currency)
        if replace_invoice:
            purchase.invoice_image = new_invoice

        for item in deletes:
            inventory_service.delete_item(db, item)
        for index, item, incoming in updates:
            inventory_service.update_item(db, item, incoming, field=f"items.{index}.quantity")
        for incoming in creates:
            inventory_service.create_item(db, purchase, incoming)
        db.flush()

        ledger_service.sync_purchase_supplier_payment(db, purchase, payload.amount_paid)
        ledger_service.sync_purchase_investor_outflow(db, purchase)

    if replace_invoice and old_invoice:
        storage.delete(old_invoice)

    db.refresh(purchase)
    logger.info(
        "Purchase %s updated: %s items kept, %s added, %s removed",
        purchase.purchase_id,
        len(updates),
        len(creates),
        len(deletes),
    )
    return purchase


def delete_purchase(
    db: Session,
    tenant_id: int,
    purchase_id: int,
    storage: Optional[InvoiceStorage] = None,
) -> None:
    """Delete an unsold purchase with its items and linked ledger rows, then its invoice file."""
    storage = storage or invoice_storage
    purchase = get_owned(db, Purchase, purchase_id, tenant_id)

    sold = [item for item in purchase.items if item.quantity_selled > 0]
    if sold:
        names = ", ".join(f"{item.product_name} (Sold: {item.quantity_selled})" for item in sold)
        raise ItemHasSales(f"Cannot delete a purchase with sold items: {names}")

    invoice = purchase.invoice_image
    with atomic(db):
        db.delete(purchase)

    if invoice:
        storage.delete(invoice)
    logger.info("Purchase %s deleted", purchase_id)


# -------------------------------------------------
# READS
# -------------------------------------------------

def amount_paid(purchase: Purchase) -> Decimal:
    return sum((txn.amount for txn in purchase.supplier_transactions), Decimal("0"))


def sold_percentage(purchase: Purchase) -> float:
    total_qty = sum(item.quantity for item in purchase.items)
    total_sold = sum(item.quantity_selled for item in purchase.items)
    if total_qty > 0:
        return round(total_sold / total_qty * 100, 2)
    return 0.0


def get_purchase(db: Session, tenant_id: int, purchase_id: int) -> Purchase:
    return get_owned(db, Purchase, purchase_id, tenant_id)


def _sold_percentage_column():
    return (
        select(
            case(
                (
                    func.sum(PurchaseItem.quantity) > 0,
                    func.round(func.sum(PurchaseItem.quantity_selled) * 100.0 / func.sum(PurchaseItem.quantity), 2),
                ),
                else_=0,
            )
        )
        .where(PurchaseItem.purchase_id == Purchase.purchase_id)
        .correlate(Purchase)
        .scalar_subquery()
    )


def _filtered_query(db: Session, tenant_id: int, filters: PurchaseFilters) -> Query:
    query = (
        db.query(Purchase)
        .join(Supplier, Supplier.supplier_id == Purchase.supplier_id)
        .join(Investor, Investor.investor_id == Purchase.investor_id)
        .filter(Purchase.user_id == tenant_id)
    )

    if filters.search:
        term = f"%{filters.search.strip()}%"
        query = query.filter(
            or_(
                Purchase.supplier_invoice_number.ilike(term),
                Purchase.discount_reason.ilike(term),
                Purchase.shipping_note.ilike(term),
                Purchase.currency.ilike(term),
                Purchase.note.ilike(term),
                Supplier.name.ilike(term),
                Supplier.email.ilike(term),
                Supplier.phone.ilike(term),
                Investor.name.ilike(term),
                Investor.email.ilike(term),
                Investor.phone.ilike(term),
                Purchase.items.any(
                    or_(
                        PurchaseItem.product_name.ilike(term),
                        PurchaseItem.barcode_prinsipal.ilike(term),
                        PurchaseItem.barcode_generated.ilike(term),
                    )
                ),
            )
        )

    if filters.start_date:
        query = query.filter(Purchase.purchase_date >= filters.start_date)
    if filters.end_date:
        query = query.filter(Purchase.purchase_date <= filters.end_date)
    if filters.supplier_id:
        query = query.filter(Purchase.supplier_id == filters.supplier_id)
    if filters.investor_id:
        query = query.filter(Purchase.investor_id == filters.investor_id)
    if filters.total_min is not None:
        query = query.filter(Purchase.total >= filters.total_min)
    if filters.total_max is not None:
        query = query.filter(Purchase.total <= filters.total_max)

    if filters.sold_percentage_min is not None or filters.sold_percentage_max is not None:
        sold_pct = _sold_percentage_column()
        if filters.sold_percentage_min is not None:
            query = query.filter(sold_pct >= filters.sold_percentage_min)
        if filters.sold_percentage_max is not None:
            query = query.filter(sold_pct <= filters.sold_percentage_max)
    return query


def _summarize(query: Query) -> PurchaseSummary:
    count, subtotal, discount, shipping, total = query.with_entities(
        func.count(Purchase.purchase_id),
        func.coalesce(func.sum(Purchase.subtotal), 0),
        func.coalesce(func.sum(Purchase.discount_value), 0),
        func.coalesce(func.sum(Purchase.shipping_value), 0),
        func.coalesce(func.sum(Purchase.total), 0),
    ).one()
    return PurchaseSummary(
        total_purchases=count or 0,
        total_subtotal=Decimal(str(subtotal)),
        total_discount=Decimal(str(discount)),
        total_shipping=Decimal(str(shipping)),
        grand_total=Decimal(str(total)),
    )


def list_purchases(
    db: Session,
    tenant_id: int,
    filters: PurchaseFilters,
) -> Tuple[List[Purchase], PurchaseSummary]:
    """Filtered purchases, newest first, with totals over the whole filtered set."""
    query = _filtered_query(db, tenant_id, filters)
    summary = _summarize(query)
    rows = (
        query.options(selectinload(Purchase.items), selectinload(Purchase.supplier_transactions))
        .order_by(Purchase.purchase_date.desc(), Purchase.purchase_id.desc())
        .offset(max(filters.offset, 0))
        .limit(min(max(filters.limit, 1), 500))
        .all()
    )
    return rows, summary
