from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.deps import get_db, get_tenant_id, http_error
from backoffice.schemas.ledger import (
    InvestorTransactionIn,
    InvestorTransactionListOut,
    InvestorTransactionOut,
    SupplierTransactionIn,
    SupplierTransactionListOut,
    SupplierTransactionOut,
    TransactionFilters,
)
from backoffice.services import ledger_service
from backoffice.services.ledger_service import INVESTOR, SUPPLIER

router = APIRouter()


# -------------------------------------------------
# SUPPLIER PAYMENTS
# -------------------------------------------------

@router.get(
    "/suppliers",
    response_model=SupplierTransactionListOut,
    summary="List supplier payments with totals",
)
def list_supplier_transactions(
    search: Optional[str] = None,
    supplier_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    amount_min: Optional[Decimal] = None,
    amount_max: Optional[Decimal] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierTransactionListOut:
    filters = TransactionFilters(
        search=search,
        supplier_id=supplier_id,
        start_date=start_date,
        end_date=end_date,
        amount_min=amount_min,
        amount_max=amount_max,
        limit=limit,
        offset=offset,
    )
    rows, summary = ledger_service.list_supplier_transactions(db, tenant_id, filters)
    return SupplierTransactionListOut(
        transactions=[SupplierTransactionOut.model_validate(row) for row in rows],
        summary=summary,
    )


@router.post(
    "/suppliers",
    response_model=SupplierTransactionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a manual supplier payment",
)
def create_supplier_transaction(
    payload: SupplierTransactionIn,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierTransactionOut:
    try:
        return ledger_service.create_supplier_transaction(db, tenant_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/suppliers/{transaction_id}", response_model=SupplierTransactionOut)
def get_supplier_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierTransactionOut:
    try:
        return ledger_service.get_transaction(db, tenant_id, SUPPLIER, transaction_id)
    except ValueError as exc:
        raise http_error(exc)


@router.put("/suppliers/{transaction_id}", response_model=SupplierTransactionOut)
def update_supplier_transaction(
    transaction_id: int,
    payload: SupplierTransactionIn,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierTransactionOut:
    try:
        return ledger_service.update_transaction(db, tenant_id, SUPPLIER, transaction_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.delete("/suppliers/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    try:
        ledger_service.delete_transaction(db, tenant_id, SUPPLIER, transaction_id)
    except ValueError as exc:
        raise http_error(exc)
    return None


# -------------------------------------------------
# INVESTOR CAPITAL
# -------------------------------------------------

@router.get(
    "/investors",
    response_model=InvestorTransactionListOut,
    summary="List investor capital movements with totals",
)
def list_investor_transactions(
    search: Optional[str] = None,
    investor_id: Optional[int] = None,
    type: Optional[str] = Query(default=None, pattern="^(In|Out)$"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    amount_min: Optional[Decimal] = None,
    amount_max: Optional[Decimal] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorTransactionListOut:
    filters = TransactionFilters(
        search=search,
        investor_id=investor_id,
        type=type,
        start_date=start_date,
        end_date=end_date,
        amount_min=amount_min,
        amount_max=amount_max,
        limit=limit,
        offset=offset,
    )
    try:
        rows, summary = ledger_service.list_investor_transactions(db, tenant_id, filters)
    except ValueError as exc:
        raise http_error(exc)
    return InvestorTransactionListOut(
        transactions=[InvestorTransactionOut.model_validate(row) for row in rows],
        summary=summary,
    )


@router.post(
    "/investors",
    response_model=InvestorTransactionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a manual capital movement",
)
def create_investor_transaction(
    payload: InvestorTransactionIn,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorTransactionOut:
    try:
        return ledger_service.create_investor_transaction(db, tenant_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/investors/{transaction_id}", response_model=InvestorTransactionOut)
def get_investor_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorTransactionOut:
    try:
        return ledger_service.get_transaction(db, tenant_id, INVESTOR, transaction_id)
    except ValueError as exc:
        raise http_error(exc)


@router.put("/investors/{transaction_id}", response_model=InvestorTransactionOut)
def update_investor_transaction(
    transaction_id: int,
    payload: InvestorTransactionIn,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorTransactionOut:
    try:
        return ledger_service.update_transaction(db, tenant_id, INVESTOR, transaction_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.delete("/investors/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_investor_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    try:
        ledger_service.delete_transaction(db, tenant_id, INVESTOR, transaction_id)
    except ValueError as exc:
        raise http_error(exc)
    return None
