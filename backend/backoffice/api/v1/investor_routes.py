from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.deps import get_db, get_tenant_id, http_error
from backoffice.schemas.balance import InvestorBalances, InvestorOverview
from backoffice.schemas.party import InvestorCreate, InvestorOut, InvestorUpdate
from backoffice.schemas.purchase import PurchaseItemOut
from backoffice.services import balance_service, investor_service, sale_service

router = APIRouter()


@router.post(
    "",
    response_model=InvestorOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an investor",
)
def create_investor(
    payload: InvestorCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorOut:
    try:
        return investor_service.create_investor(db, tenant_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.get("", response_model=List[InvestorOut], summary="List investors")
def list_investors(
    search: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> List[InvestorOut]:
    return investor_service.list_investors(db, tenant_id, search=search, limit=limit, offset=offset)


@router.get(
    "/overview",
    response_model=InvestorOverview,
    summary="Capital, cash and profit per investor with grand totals",
)
def investors_overview(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorOverview:
    return balance_service.investors_overview(db, tenant_id)


@router.get("/{investor_id}", response_model=InvestorOut, summary="Get an investor")
def get_investor(
    investor_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorOut:
    try:
        return investor_service.get_investor(db, tenant_id, investor_id)
    except ValueError as exc:
        raise http_error(exc)


@router.put("/{investor_id}", response_model=InvestorOut, summary="Update an investor")
def update_investor(
    investor_id: int,
    payload: InvestorUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorOut:
    try:
        return investor_service.update_investor(db, tenant_id, investor_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.delete(
    "/{investor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an investor with no capital or profit",
)
def delete_investor(
    investor_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    try:
        investor_service.delete_investor(db, tenant_id, investor_id)
    except ValueError as exc:
        raise http_error(exc)
    return None


@router.get("/{investor_id}/balances", response_model=InvestorBalances, summary="Derived investor balances")
def investor_balances(
    investor_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> InvestorBalances:
    try:
        return balance_service.investor_balances(db, tenant_id, investor_id)
    except ValueError as exc:
        raise http_error(exc)


@router.get(
    "/{investor_id}/available-items",
    response_model=List[PurchaseItemOut],
    summary="Purchase items with stock left for this investor",
)
def available_items(
    investor_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> List[PurchaseItemOut]:
    try:
        return sale_service.list_available_items(db, tenant_id, investor_id)
    except ValueError as exc:
        raise http_error(exc)
