import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.deps import get_db, get_tenant_id, http_error
from backoffice.schemas.purchase import (
    PurchaseCreate,
    PurchaseFilters,
    PurchaseItemOut,
    PurchaseListOut,
    PurchaseOut,
    PurchaseUpdate,
)
from backoffice.services import inventory_service, purchase_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=PurchaseOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a purchase with items and linked ledger rows",
)
def create_purchase(
    payload: PurchaseCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> PurchaseOut:
    try:
        return purchase_service.create_purchase(db, tenant_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.get(
    "",
    response_model=PurchaseListOut,
    summary="List purchases with filters and totals",
)
def list_purchases(
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    supplier_id: Optional[int] = None,
    investor_id: Optional[int] = None,
    total_min: Optional[Decimal] = None,
    total_max: Optional[Decimal] = None,
    sold_percentage_min: Optional[float] = Query(default=None, ge=0, le=100),
    sold_percentage_max: Optional[float] = Query(default=None, ge=0, le=100),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> PurchaseListOut:
    filters = PurchaseFilters(
        search=search,
        start_date=start_date,
        end_date=end_date,
        supplier_id=supplier_id,
        investor_id=investor_id,
        total_min=total_min,
        total_max=total_max,
        sold_percentage_min=sold_percentage_min,
        sold_percentage_max=sold_percentage_max,
        limit=limit,
        offset=offset,
    )
    purchases, summary = purchase_service.list_purchases(db, tenant_id, filters)
    return PurchaseListOut(
        purchases=[PurchaseOut.model_validate(p) for p in purchases],
        summary=summary,
    )


@router.get(
    "/items/{purchase_item_id}",
    response_model=PurchaseItemOut,
    summary="Look up a purchase item, e.g. after scanning its generated barcode",
)
def get_purchase_item(
    purchase_item_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> PurchaseItemOut:
    try:
        return inventory_service.get_item_for_tenant(db, tenant_id, purchase_item_id)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/{purchase_id}", response_model=PurchaseOut, summary="Get a purchase")
def get_purchase(
    purchase_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> PurchaseOut:
    try:
        return purchase_service.get_purchase(db, tenant_id, purchase_id)
    except ValueError as exc:
        raise http_error(exc)


@router.put(
    "/{purchase_id}",
    response_model=PurchaseOut,
    summary="Replace a purchase, diffing its items",
)
def update_purchase(
    purchase_id: int,
    payload: PurchaseUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
) -> PurchaseOut:
    try:
        return purchase_service.update_purchase(db, tenant_id, purchase_id, payload)
    except ValueError as exc:
        raise http_error(exc)


@router.delete(
    "/{purchase_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a purchase that has no sold items",
)
def delete_purchase(
    purchase_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    try:
        purchase_service.delete_purchase(db, tenant_id, purchase_id)
    except ValueError as exc:
        logger.warning("Purchase %s not deleted: %s", purchase_id, exc)
        raise http_error(exc)
    return None
