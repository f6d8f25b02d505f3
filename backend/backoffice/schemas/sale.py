from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from backoffice.schemas.purchase import PurchaseItemOut


class SaleItemIn(BaseModel):
    purchase_item_id: int
    quantity: int
    sale_price: Decimal


class SaleCreate(BaseModel):
    investor_id: int
    invoice_number: str
    sale_date: date
    discount_value: Decimal = Decimal("0")
    discount_reason: Optional[str] = None
    currency: Optional[str] = None
    note: Optional[str] = None
    items: List[SaleItemIn] = []


class SaleItemOut(BaseModel):
    sale_item_id: int
    purchase_item_id: int
    quantity: int
    sale_price: Decimal
    subtotal: Decimal
    purchase_item: Optional[PurchaseItemOut] = None

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    sale_id: int
    investor_id: int
    invoice_number: str
    sale_date: date
    subtotal: Decimal
    discount_value: Decimal
    discount_reason: Optional[str] = None
    total: Decimal
    currency: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[SaleItemOut] = []

    class Config:
        from_attributes = True


class SaleFilters(BaseModel):
    search: Optional[str] = None
    investor_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    limit: int = 50
    offset: int = 0
