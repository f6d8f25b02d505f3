import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from backoffice.core.errors import (
    BelowSoldQuantity,
    InsufficientStock,
    ItemHasSales,
    NotFound,
    ValidationFailed,
)
from backoffice.models.purchase import Purchase, PurchaseItem
from backoffice.schemas.purchase import PurchaseItemIn
from backoffice.utils.text_cleaner import normalize_barcode, normalize_whitespace

logger = logging.getLogger(__name__)


def generate_barcode(item_id: int, barcode_prinsipal: Optional[str]) -> str:
    """Upper-case hex of the item id followed by the supplier barcode as given."""
    return format(item_id, "X") + (barcode_prinsipal or "")


def available_quantity(item: PurchaseItem) -> int:
    return item.quantity - item.quantity_selled


def sold_percentage(item: PurchaseItem) -> float:
    if item.quantity > 0:
        return round(item.quantity_selled / item.quantity * 100, 2)
    return 0.0


def line_subtotal(quantity: int, price: Decimal) -> Decimal:
    return (Decimal(quantity) * price).quantize(Decimal("0.01"))


def get_item_for_tenant(db: Session, tenant_id: int, item_id: int) -> PurchaseItem:
    item = (
        db.query(PurchaseItem)
        .join(Purchase, Purchase.purchase_id == PurchaseItem.purchase_id)
        .filter(PurchaseItem.purchase_item_id == item_id, Purchase.user_id == tenant_id)
        .first()
    )
    if not item:
        raise NotFound("Purchase item", item_id)
    return item


def create_item(db: Session, purchase: Purchase, payload: PurchaseItemIn) -> PurchaseItem:
    """
    Attach a new item to ``purchase`` and assign its generated barcode.

    The id is only known after the insert, so the item is flushed first and
    the barcode is written in a second step.
    """
    item = PurchaseItem(
        product_name=normalize_whitespace(payload.product_name),
        barcode_prinsipal=normalize_barcode(payload.barcode_prinsipal) or None,
        quantity=payload.quantity,
        quantity_selled=0,
        unit_price=payload.unit_price,
        sale_price=payload.sale_price,
        subtotal=line_subtotal(payload.quantity, payload.unit_price),
    )
    purchase.items.append(item)
    db.flush()
    item.barcode_generated = generate_barcode(item.purchase_item_id, item.barcode_prinsipal)
    return item


def update_item(db: Session, item: PurchaseItem, payload: PurchaseItemIn, field: str = "quantity") -> PurchaseItem:
    # barcode_generated stays as assigned at creation
    resize_quantity(db, item, payload.quantity, field=field)
    item.product_name = normalize_whitespace(payload.product_name)
    item.barcode_prinsipal = normalize_barcode(payload.barcode_prinsipal) or None
    item.unit_price = payload.unit_price
    item.sale_price = payload.sale_price
    item.subtotal = line_subtotal(item.quantity, item.unit_price)
    return item


def resize_quantity(db: Session, item: PurchaseItem, new_quantity: int, field: str = "quantity") -> PurchaseItem:
    if new_quantity < item.quantity_selled:
        raise BelowSoldQuantity(field, item.product_name, item.quantity_selled)
    item.quantity = new_quantity
    item.subtotal = line_subtotal(new_quantity, item.unit_price)
    return item


def delete_item(db: Session, item: PurchaseItem) -> None:
    if item.quantity_selled > 0:
        raise ItemHasSales(
            f"Cannot delete items that have been sold: {item.product_name} (Sold: {item.quantity_selled})"
        )
    item.purchase.items.remove(item)
    db.flush()


def _refresh_sold_quantity(db: Session, item_id: int) -> Optional[PurchaseItem]:
    item = db.get(PurchaseItem, item_id)
    if item is not None:
        db.expire(item, ["quantity_selled", "updated_at"])
    return item


def reserve_sale(db: Session, item_id: int, quantity: int) -> None:
    """
    Consume ``quantity`` units of an item for a sale.

    Availability check and increment are one conditional UPDATE, so two
    sales racing on the same item can never push quantity_selled past
    quantity.
    """
    if quantity <= 0:
        raise ValidationFailed({"quantity": "Quantity must be at least 1."})

    stmt = (
        update(PurchaseItem)
        .where(
            PurchaseItem.purchase_item_id == item_id,
            PurchaseItem.quantity - PurchaseItem.quantity_selled >= quantity,
        )
        .values(quantity_selled=PurchaseItem.quantity_selled + quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    item = _refresh_sold_quantity(db, item_id)
    if result.rowcount == 1:
        return
    if item is None:
        raise NotFound("Purchase item", item_id)
    raise InsufficientStock(
        f"Quantity exceeds available stock for product: {item.product_name}. "
        f"Available: {available_quantity(item)}"
    )


def release_sale(db: Session, item_id: int, quantity: int) -> None:
    """Give back ``quantity`` sold units; quantity_selled never drops below zero."""
    if quantity <= 0:
        raise ValidationFailed({"quantity": "Quantity must be at least 1."})

    stmt = (
        update(PurchaseItem)
        .where(PurchaseItem.purchase_item_id == item_id)
        .values(
            quantity_selled=case(
                (PurchaseItem.quantity_selled >= quantity, PurchaseItem.quantity_selled - quantity),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    _refresh_sold_quantity(db, item_id)
    if result.rowcount != 1:
        raise NotFound("Purchase item", item_id)


def available_items_for_investor(db: Session, tenant_id: int, investor_id: int) -> List[PurchaseItem]:
    return (
        db.query(PurchaseItem)
        .join(Purchase, Purchase.purchase_id == PurchaseItem.purchase_id)
        .filter(
            Purchase.user_id == tenant_id,
            Purchase.investor_id == investor_id,
            PurchaseItem.quantity - PurchaseItem.quantity_selled > 0,
        )
        .order_by(PurchaseItem.product_name, PurchaseItem.purchase_item_id)
        .all()
    )
