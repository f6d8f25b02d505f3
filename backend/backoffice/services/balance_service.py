"""
Read-only balances for investors and suppliers.

Nothing here is stored: every figure is summed from purchases, sales and
ledger rows at call time.
"""
from decimal import Decimal
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.models.investor import Investor
from backoffice.models.ledger import TRANSACTION_IN, TRANSACTION_OUT, InvestorTransaction, SupplierTransaction
from backoffice.models.purchase import Purchase, PurchaseItem
from backoffice.models.sale import Sale, SaleItem
from backoffice.models.supplier import Supplier
from backoffice.schemas.balance import (
    InvestorBalances,
    InvestorOverview,
    InvestorOverviewItem,
    InvestorTotals,
    SupplierDebt,
    SupplierOverview,
    SupplierOverviewItem,
    SupplierTotals,
)
from backoffice.schemas.party import InvestorOut, SupplierOut
from backoffice.services.ownership import get_owned

CENTS = Decimal("0.01")


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS)


def _capital(db: Session, tenant_id: int, investor_id: int, txn_type: str) -> Decimal:
    total = (
        db.query(func.sum(InvestorTransaction.amount))
        .filter(
            InvestorTransaction.user_id == tenant_id,
            InvestorTransaction.investor_id == investor_id,
            InvestorTransaction.type == txn_type,
        )
        .scalar()
    )
    return _money(total)


def _investor_figures(db: Session, tenant_id: int, investor_id: int) -> InvestorBalances:
    capital_in = _capital(db, tenant_id, investor_id, TRANSACTION_IN)
    capital_out = _capital(db, tenant_id, investor_id, TRANSACTION_OUT)

    cash_in_process = _money(
        db.query(func.sum(PurchaseItem.unit_price * (PurchaseItem.quantity - PurchaseItem.quantity_selled)))
        .join(Purchase, Purchase.purchase_id == PurchaseItem.purchase_id)
        .filter(Purchase.user_id == tenant_id, Purchase.investor_id == investor_id)
        .scalar()
    )

    sales_revenue = _money(
        db.query(func.sum(Sale.total))
        .filter(Sale.user_id == tenant_id, Sale.investor_id == investor_id)
        .scalar()
    )
    cost_of_goods_sold = _money(
        db.query(func.sum(PurchaseItem.unit_price * SaleItem.quantity))
        .join(PurchaseItem, PurchaseItem.purchase_item_id == SaleItem.purchase_item_id)
        .join(Sale, Sale.sale_id == SaleItem.sale_id)
        .filter(Sale.user_id == tenant_id, Sale.investor_id == investor_id)
        .scalar()
    )
    # Sale totals are net of discounts
    profit = sales_revenue - cost_of_goods_sold

    # Purchases already left as Out rows; sales bring back what was actually charged
    available_cash = capital_in - capital_out + sales_revenue
    return InvestorBalances(
        investor_id=investor_id,
        capital_in=capital_in,
        capital_out=capital_out,
        sales_revenue=sales_revenue,
        cost_of_goods_sold=cost_of_goods_sold,
        cash_in_process=cash_in_process,
        profit=profit,
        available_cash=available_cash,
        total_capital=available_cash + cash_in_process,
    )


def investor_balances(db: Session, tenant_id: int, investor_id: int) -> InvestorBalances:
    get_owned(db, Investor, investor_id, tenant_id)
    return _investor_figures(db, tenant_id, investor_id)


def supplier_debt(db: Session, tenant_id: int, supplier_id: int) -> SupplierDebt:
    """What is still owed to a supplier; a negative debt is a prepayment."""
    get_owned(db, Supplier, supplier_id, tenant_id)
    purchases_total = _money(
        db.query(func.sum(Purchase.total))
        .filter(Purchase.user_id == tenant_id, Purchase.supplier_id == supplier_id)
        .scalar()
    )
    payments_total = _money(
        db.query(func.sum(SupplierTransaction.amount))
        .filter(SupplierTransaction.user_id == tenant_id, SupplierTransaction.supplier_id == supplier_id)
        .scalar()
    )
    return SupplierDebt(
        supplier_id=supplier_id,
        purchases_total=purchases_total,
        payments_total=payments_total,
        debt=purchases_total - payments_total,
    )


def investors_overview(db: Session, tenant_id: int) -> InvestorOverview:
    investors = (
        db.query(Investor)
        .filter(Investor.user_id == tenant_id)
        .order_by(Investor.name, Investor.investor_id)
        .all()
    )
    rows = []
    totals = InvestorTotals()
    for investor in investors:
        balances = _investor_figures(db, tenant_id, investor.investor_id)
        rows.append(InvestorOverviewItem(investor=InvestorOut.model_validate(investor), balances=balances))
        totals.total_capital += balances.total_capital
        totals.available_cash += balances.available_cash
        totals.cash_in_process += balances.cash_in_process
        totals.profit += balances.profit
        totals.capital_in += balances.capital_in
        totals.capital_out += balances.capital_out
        totals.cost_of_goods_sold += balances.cost_of_goods_sold
        totals.sales_revenue += balances.sales_revenue
    return InvestorOverview(investors=rows, totals=totals)


def suppliers_overview(db: Session, tenant_id: int) -> SupplierOverview:
    suppliers = (
        db.query(Supplier)
        .filter(Supplier.user_id == tenant_id)
        .order_by(Supplier.name, Supplier.supplier_id)
        .all()
    )
    rows = []
    totals = SupplierTotals()
    for supplier in suppliers:
        debt = supplier_debt(db, tenant_id, supplier.supplier_id)
        rows.append(SupplierOverviewItem(supplier=SupplierOut.model_validate(supplier), debt=debt))
        totals.purchases += debt.purchases_total
        totals.payments += debt.payments_total
        totals.debts += debt.debt
    return SupplierOverview(suppliers=rows, totals=totals)
