"""Payload builders shared by the service and API tests."""
from datetime import date
from decimal import Decimal

from backoffice.schemas.purchase import PurchaseCreate, PurchaseItemIn, PurchaseUpdate
from backoffice.schemas.sale import SaleCreate, SaleItemIn

PURCHASE_DATE = date(2025, 10, 1)
SALE_DATE = date(2025, 10, 5)


def item_payload(name="Olive oil 1L", quantity=10, unit_price="100", sale_price="150", **extra):
    return PurchaseItemIn(
        product_name=name,
        quantity=quantity,
        unit_price=Decimal(unit_price),
        sale_price=Decimal(sale_price),
        **extra,
    )


def purchase_payload(supplier_id, investor_id, items=None, **overrides):
    """Valid purchase whose subtotal and total equal the cost of its items."""
    items = items if items is not None else [item_payload()]
    subtotal = sum((Decimal(i.quantity) * i.unit_price for i in items), Decimal("0"))
    data = dict(
        supplier_id=supplier_id,
        investor_id=investor_id,
        supplier_invoice_number="INV-001",
        purchase_date=PURCHASE_DATE,
        subtotal=subtotal,
        discount_value=Decimal("0"),
        shipping_value=Decimal("0"),
        total=subtotal,
        amount_paid=Decimal("0"),
        items=items,
    )
    data.update(overrides)
    return PurchaseCreate(**data)


def update_payload_from(purchase, items=None, **overrides):
    """Update payload that keeps every field of ``purchase`` unless overridden."""
    if items is None:
        items = [
            PurchaseItemIn(
                id=item.purchase_item_id,
                product_name=item.product_name,
                barcode_prinsipal=item.barcode_prinsipal,
                quantity=item.quantity,
                unit_price=item.unit_price,
                sale_price=item.sale_price,
            )
            for item in purchase.items
        ]
    data = dict(
        supplier_id=purchase.supplier_id,
        investor_id=purchase.investor_id,
        supplier_invoice_number=purchase.supplier_invoice_number,
        purchase_date=purchase.purchase_date,
        subtotal=purchase.subtotal,
        discount_value=purchase.discount_value,
        shipping_value=purchase.shipping_value,
        total=purchase.total,
        amount_paid=sum((t.amount for t in purchase.supplier_transactions), Decimal("0")),
        items=items,
    )
    data.update(overrides)
    return PurchaseUpdate(**data)


def sale_payload(investor_id, lines, invoice_number="S-0001", **overrides):
    """``lines`` is a list of (purchase_item_id, quantity, sale_price)."""
    data = dict(
        investor_id=investor_id,
        invoice_number=invoice_number,
        sale_date=SALE_DATE,
        items=[
            SaleItemIn(purchase_item_id=item_id, quantity=quantity, sale_price=Decimal(str(price)))
            for item_id, quantity, price in lines
        ],
    )
    data.update(overrides)
    return SaleCreate(**data)
