from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.deps import get_db, get_tenant_id, http_error
from backoffice.schemas.balance import SupplierDebt, SupplierOverview
from backoffice.schemas.party import SupplierCreate, SupplierOut, SupplierUpdate
from backoffice.services import balance_service, supplier_service

router = APIRouter()


@router.post(
    "",
    response_model=SupplierOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a supplier",
)
def create_supplier(
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierOut:
    try:
        return supplier_service.create_supplier(db, tenant_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.get(
    "",
    response_model=List[SupplierOut],
    summary="List suppliers",
)
def list_suppliers(
    search: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> List[SupplierOut]:
    return supplier_service.list_suppliers(db, tenant_id, search=search, limit=limit, offset=offset)


@router.get(
    "/overview",
    response_model=SupplierOverview,
    summary="Debt per supplier with grand totals",
)
def suppliers_overview(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierOverview:
    return balance_service.suppliers_overview(db, tenant_id)


@router.get("/{supplier_id}", response_model=SupplierOut, summary="Get a supplier")
def get_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierOut:
    try:
        return supplier_service.get_supplier(db, tenant_id, supplier_id)
    except ValueError as exc:
        raise http_error(exc)


@router.put("/{supplier_id}", response_model=SupplierOut, summary="Update a supplier")
def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierOut:
    try:
        return supplier_service.update_supplier(db, tenant_id, supplier_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.delete(
    "/{supplier_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a supplier without purchases",
)
def delete_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    try:
        supplier_service.delete_supplier(db, tenant_id, supplier_id)
    except ValueError as exc:
        raise http_error(exc)
    return None


@router.get("/{supplier_id}/debt", response_model=SupplierDebt, summary="Outstanding debt to a supplier")
def supplier_debt(
    supplier_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SupplierDebt:
    try:
        return balance_service.supplier_debt(db, tenant_id, supplier_id)
    except ValueError as exc:
        raise http_error(exc)
