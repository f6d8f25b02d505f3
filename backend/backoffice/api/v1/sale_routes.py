from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.deps import get_db, get_tenant_id, http_error
from backoffice.schemas.sale import SaleCreate, SaleFilters, SaleOut
from backoffice.services import sale_service

router = APIRouter()


@router.post(
    "",
    response_model=SaleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a sale drawn from an investor's stock",
)
def create_sale(
    payload: SaleCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SaleOut:
    try:
        return sale_service.create_sale(db, tenant_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.get("", response_model=List[SaleOut], summary="List sales")
def list_sales(
    search: Optional[str] = None,
    investor_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> List[SaleOut]:
    filters = SaleFilters(
        search=search,
        investor_id=investor_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return sale_service.list_sales(db, tenant_id, filters)


@router.get("/{sale_id}", response_model=SaleOut, summary="Get a sale")
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> SaleOut:
    try:
        return sale_service.get_sale(db, tenant_id, sale_id)
    except ValueError as exc:
        raise http_error(exc)


@router.delete(
    "/{sale_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a sale and return its units to stock",
)
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    try:
        sale_service.delete_sale(db, tenant_id, sale_id)
    except ValueError as exc:
        raise http_error(exc)
    return None
