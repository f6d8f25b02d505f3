from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class PurchaseItemIn(BaseModel):
    id: Optional[int] = Field(default=None, description="Existing purchase_item_id when editing")
    product_name: str
    barcode_prinsipal: Optional[str] = None
    quantity: int
    unit_price: Decimal
    sale_price: Decimal


class PurchaseBase(BaseModel):
    supplier_id: int
    investor_id: int
    supplier_invoice_number: Optional[str] = None
    purchase_date: date
    subtotal: Decimal
    discount_value: Decimal = Decimal("0")
    discount_reason: Optional[str] = None
    shipping_value: Decimal = Decimal("0")
    shipping_note: Optional[str] = None
    total: Decimal
    currency: Optional[str] = None
    note: Optional[str] = None


class PurchaseCreate(PurchaseBase):
    amount_paid: Decimal = Decimal("0")
    invoice_image: Optional[str] = Field(default=None, description="Path of an already stored invoice file")
    items: List[PurchaseItemIn] = []


class PurchaseUpdate(PurchaseCreate):
    """Full replacement of a purchase; items without ``id`` are created."""


class PurchaseItemOut(BaseModel):
    purchase_item_id: int
    purchase_id: int
    product_name: str
    barcode_prinsipal: Optional[str] = None
    barcode_generated: Optional[str] = None
    quantity: int
    quantity_selled: int
    unit_price: Decimal
    sale_price: Decimal
    subtotal: Decimal

    class Config:
        from_attributes = True

    @computed_field
    @property
    def available_quantity(self) -> int:
        return self.quantity - self.quantity_selled

    @computed_field
    @property
    def sold_percentage(self) -> float:
        if self.quantity > 0:
            return round(self.quantity_selled / self.quantity * 100, 2)
        return 0.0


class LinkedPaymentOut(BaseModel):
    transaction_id: int
    amount: Decimal

    class Config:
        from_attributes = True


class PurchaseOut(PurchaseBase):
    purchase_id: int
    currency: str
    invoice_image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[PurchaseItemOut] = []
    supplier_transactions: List[LinkedPaymentOut] = Field(default=[], exclude=True)

    class Config:
        from_attributes = True

    @computed_field
    @property
    def amount_paid(self) -> Decimal:
        return sum((t.amount for t in self.supplier_transactions), Decimal("0"))

    @computed_field
    @property
    def sold_percentage(self) -> float:
        total_qty = sum(item.quantity for item in self.items)
        total_sold = sum(item.quantity_selled for item in self.items)
        if total_qty > 0:
            return round(total_sold / total_qty * 100, 2)
        return 0.0


class PurchaseFilters(BaseModel):
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    supplier_id: Optional[int] = None
    investor_id: Optional[int] = None
    total_min: Optional[Decimal] = None
    total_max: Optional[Decimal] = None
    sold_percentage_min: Optional[float] = None
    sold_percentage_max: Optional[float] = None
    limit: int = 50
    offset: int = 0


class PurchaseSummary(BaseModel):
    total_purchases: int = 0
    total_subtotal: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    total_shipping: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")


class PurchaseListOut(BaseModel):
    purchases: List[PurchaseOut]
    summary: PurchaseSummary
