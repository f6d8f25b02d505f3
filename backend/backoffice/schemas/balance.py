from decimal import Decimal
from typing import List

from pydantic import BaseModel

from backoffice.schemas.party import InvestorOut, SupplierOut

ZERO = Decimal("0")


class InvestorBalances(BaseModel):
    investor_id: int
    capital_in: Decimal = ZERO
    capital_out: Decimal = ZERO
    sales_revenue: Decimal = ZERO
    cost_of_goods_sold: Decimal = ZERO
    cash_in_process: Decimal = ZERO
    profit: Decimal = ZERO
    available_cash: Decimal = ZERO
    total_capital: Decimal = ZERO


class SupplierDebt(BaseModel):
    supplier_id: int
    purchases_total: Decimal = ZERO
    payments_total: Decimal = ZERO
    debt: Decimal = ZERO


class InvestorOverviewItem(BaseModel):
    investor: InvestorOut
    balances: InvestorBalances


class InvestorTotals(BaseModel):
    total_capital: Decimal = ZERO
    available_cash: Decimal = ZERO
    cash_in_process: Decimal = ZERO
    profit: Decimal = ZERO
    capital_in: Decimal = ZERO
    capital_out: Decimal = ZERO
    cost_of_goods_sold: Decimal = ZERO
    sales_revenue: Decimal = ZERO


class InvestorOverview(BaseModel):
    investors: List[InvestorOverviewItem]
    totals: InvestorTotals


class SupplierOverviewItem(BaseModel):
    supplier: SupplierOut
    debt: SupplierDebt


class SupplierTotals(BaseModel):
    purchases: Decimal = ZERO
    payments: Decimal = ZERO
    debts: Decimal = ZERO


class SupplierOverview(BaseModel):
    suppliers: List[SupplierOverviewItem]
    totals: SupplierTotals
