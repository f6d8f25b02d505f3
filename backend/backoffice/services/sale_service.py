import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from backoffice.core.config import settings
from backoffice.core.database import atomic
from backoffice.core.errors import InsufficientStock
from backoffice.models.investor import Investor
from backoffice.models.purchase import PurchaseItem
from backoffice.models.sale import Sale, SaleItem
from backoffice.schemas.sale import SaleCreate, SaleFilters
from backoffice.services import inventory_service
from backoffice.services.ownership import get_owned
from backoffice.utils.text_cleaner import clean_optional, normalize_whitespace
from backoffice.utils.validation import FieldErrors, resolve_currency

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def list_available_items(db: Session, tenant_id: int, investor_id: int) -> List[PurchaseItem]:
    """Stock the investor can sell from: items of their purchases with units left."""
    get_owned(db, Investor, investor_id, tenant_id)
    return inventory_service.available_items_for_investor(db, tenant_id, investor_id)


def _invoice_taken(db: Session, tenant_id: int, invoice_number: str) -> bool:
    return (
        db.query(Sale.sale_id)
        .filter(Sale.user_id == tenant_id, Sale.invoice_number == invoice_number)
        .first()
        is not None
    )


def _validate_sale(db: Session, tenant_id: int, payload: SaleCreate) -> Dict[str, object]:
    get_owned(db, Investor, payload.investor_id, tenant_id)

    errors = FieldErrors()
    invoice_number = normalize_whitespace(payload.invoice_number)
    if not invoice_number:
        errors.add("invoice_number", "Invoice number is required.")
    elif len(invoice_number) > 255:
        errors.add("invoice_number", "May not be greater than 255 characters.")
    elif _invoice_taken(db, tenant_id, invoice_number):
        errors.add("invoice_number", "The invoice number has already been taken.")

    errors.non_negative(payload.discount_value, "discount_value")
    errors.max_length(payload.discount_reason, "discount_reason", 255)
    currency = resolve_currency(payload.currency, settings.DEFAULT_CURRENCY, errors)

    available = {
        item.purchase_item_id: item
        for item in inventory_service.available_items_for_investor(db, tenant_id, payload.investor_id)
    }
    if not payload.items:
        errors.add("items", "At least one item is required.")
    for index, line in enumerate(payload.items):
        prefix = f"items.{index}"
        errors.check(
            line.purchase_item_id in available,
            f"{prefix}.purchase_item_id",
            "The selected item is not available for this investor.",
        )
        errors.check(line.quantity is not None and line.quantity >= 1, f"{prefix}.quantity", "Quantity must be at least 1.")
        errors.non_negative(line.sale_price, f"{prefix}.sale_price")
    errors.raise_if_any()

    requested: Dict[int, int] = defaultdict(int)
    for line in payload.items:
        requested[line.purchase_item_id] += line.quantity
    for item_id, quantity in requested.items():
        item = available[item_id]
        if quantity > inventory_service.available_quantity(item):
            raise InsufficientStock(
                f"Quantity exceeds available stock for product: {item.product_name}. "
                f"Available: {inventory_service.available_quantity(item)}"
            )

    subtotal = sum(
        (inventory_service.line_subtotal(line.quantity, line.sale_price) for line in payload.items),
        ZERO,
    )
    total = max(subtotal - payload.discount_value, ZERO)
    return {
        "invoice_number": invoice_number,
        "currency": currency,
        "subtotal": subtotal,
        "total": total,
    }


def create_sale(db: Session, tenant_id: int, payload: SaleCreate) -> Sale:
    """
    Record a sale and consume its stock in one transaction.

    Each line's reservation is a conditional update, so a competing sale
    that drained the item in the meantime makes this one fail whole.
    """
    computed = _validate_sale(db, tenant_id, payload)

    with atomic(db):
        sale = Sale(
            user_id=tenant_id,
            investor_id=payload.investor_id,
            invoice_number=computed["invoice_number"],
            sale_date=payload.sale_date,
            subtotal=computed["subtotal"],
            discount_value=payload.discount_value,
            discount_reason=clean_optional(payload.discount_reason),
            total=computed["total"],
            currency=computed["currency"],
            note=clean_optional(payload.note),
        )
        db.add(sale)
        db.flush()

        for line in payload.items:
            sale.items.append(
                SaleItem(
                    purchase_item_id=line.purchase_item_id,
                    quantity=line.quantity,
                    sale_price=line.sale_price,
                    subtotal=inventory_service.line_subtotal(line.quantity, line.sale_price),
                )
            )
            db.flush()
            inventory_service.reserve_sale(db, line.purchase_item_id, line.quantity)

    db.refresh(sale)
    logger.info(
        "Sale %s (%s) created with %s lines, total %s",
        sale.sale_id,
        sale.invoice_number,
        len(sale.items),
        sale.total,
    )
    return sale


def get_sale(db: Session, tenant_id: int, sale_id: int) -> Sale:
    return get_owned(db, Sale, sale_id, tenant_id)


def list_sales(db: Session, tenant_id: int, filters: SaleFilters) -> List[Sale]:
    query = (
        db.query(Sale)
        .join(Investor, Investor.investor_id == Sale.investor_id)
        .filter(Sale.user_id == tenant_id)
    )
    if filters.search:
        term = f"%{filters.search.strip()}%"
        query = query.filter(
            or_(
                Sale.invoice_number.ilike(term),
                Sale.discount_reason.ilike(term),
                Sale.currency.ilike(term),
                Sale.note.ilike(term),
                Investor.name.ilike(term),
                Investor.email.ilike(term),
                Investor.phone.ilike(term),
                Sale.items.any(
                    SaleItem.purchase_item.has(
                        or_(
                            PurchaseItem.product_name.ilike(term),
                            PurchaseItem.barcode_prinsipal.ilike(term),
                            PurchaseItem.barcode_generated.ilike(term),
                        )
                    )
                ),
            )
        )
    if filters.investor_id:
        query = query.filter(Sale.investor_id == filters.investor_id)
    if filters.start_date:
        query = query.filter(Sale.sale_date >= filters.start_date)
    if filters.end_date:
        query = query.filter(Sale.sale_date <= filters.end_date)

    return (
        query.options(selectinload(Sale.items).selectinload(SaleItem.purchase_item))
        .order_by(Sale.sale_date.desc(), Sale.sale_id.desc())
        .offset(max(filters.offset, 0))
        .limit(min(max(filters.limit, 1), 500))
        .all()
    )


def delete_sale(db: Session, tenant_id: int, sale_id: int) -> None:
    """Return every line's units to stock and remove the sale with its linked ledger rows."""
    sale = get_owned(db, Sale, sale_id, tenant_id)
    lines = [(line.purchase_item_id, line.quantity) for line in sale.items]

    with atomic(db):
        for item_id, quantity in lines:
            inventory_service.release_sale(db, item_id, quantity)
        db.delete(sale)

    logger.info("Sale %s deleted, %s lines returned to stock", sale_id, len(lines))
