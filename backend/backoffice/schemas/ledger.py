from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class SupplierTransactionIn(BaseModel):
    supplier_id: int
    date: date
    amount: Decimal
    note: Optional[str] = None


class InvestorTransactionIn(BaseModel):
    investor_id: int
    date: date
    type: str = Field(..., description="In or Out")
    amount: Decimal
    note: Optional[str] = None


class SupplierTransactionOut(SupplierTransactionIn):
    transaction_id: int
    purchase_id: Optional[int] = None
    is_linked: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvestorTransactionOut(InvestorTransactionIn):
    transaction_id: int
    purchase_id: Optional[int] = None
    sale_id: Optional[int] = None
    is_linked: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionFilters(BaseModel):
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    supplier_id: Optional[int] = None
    investor_id: Optional[int] = None
    type: Optional[str] = None
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None
    limit: int = 50
    offset: int = 0


class TransactionSummary(BaseModel):
    total_transactions: int = 0
    total_amount: Decimal = Decimal("0")
    average_amount: Decimal = Decimal("0")
    max_amount: Decimal = Decimal("0")
    min_amount: Decimal = Decimal("0")


class SupplierTransactionListOut(BaseModel):
    transactions: List[SupplierTransactionOut]
    summary: TransactionSummary


class InvestorTransactionListOut(BaseModel):
    transactions: List[InvestorTransactionOut]
    summary: TransactionSummary
