import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backoffice.core.database import atomic
from backoffice.core.errors import RecordInUse
from backoffice.models.purchase import Purchase
from backoffice.models.supplier import Supplier
from backoffice.schemas.party import SupplierCreate, SupplierUpdate
from backoffice.services.ownership import get_owned
from backoffice.utils.text_cleaner import clean_optional, normalize_whitespace
from backoffice.utils.validation import FieldErrors, validate_party

logger = logging.getLogger(__name__)


def _email_taken(db: Session, tenant_id: int, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Supplier.supplier_id).filter(
        Supplier.user_id == tenant_id,
        func.lower(Supplier.email) == email.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Supplier.supplier_id != exclude_id)
    return query.first() is not None


def _validate(db: Session, tenant_id: int, payload: SupplierCreate, exclude_id: Optional[int] = None) -> None:
    errors = FieldErrors()
    validate_party(payload, errors)
    email = clean_optional(payload.email)
    if email and "email" not in errors.errors and _email_taken(db, tenant_id, email, exclude_id):
        errors.add("email", "The email has already been taken.")
    errors.raise_if_any()


def _apply(supplier: Supplier, payload: SupplierCreate) -> None:
    supplier.name = normalize_whitespace(payload.name)
    supplier.email = clean_optional(payload.email)
    supplier.phone = clean_optional(payload.phone)
    supplier.address = clean_optional(payload.address)
    supplier.notes = payload.notes.strip() if payload.notes and payload.notes.strip() else None


def create_supplier(db: Session, tenant_id: int, payload: SupplierCreate) -> Supplier:
    _validate(db, tenant_id, payload)
    with atomic(db):
        supplier = Supplier(user_id=tenant_id)
        _apply(supplier, payload)
        db.add(supplier)
    db.refresh(supplier)
    logger.info("Supplier %s created: %s", supplier.supplier_id, supplier.name)
    return supplier


def update_supplier(db: Session, tenant_id: int, supplier_id: int, payload: SupplierUpdate) -> Supplier:
    supplier = get_owned(db, Supplier, supplier_id, tenant_id)
    _validate(db, tenant_id, payload, exclude_id=supplier_id)
    with atomic(db):
        _apply(supplier, payload)
    db.refresh(supplier)
    logger.info("Supplier %s updated", supplier_id)
    return supplier


def get_supplier(db: Session, tenant_id: int, supplier_id: int) -> Supplier:
    return get_owned(db, Supplier, supplier_id, tenant_id)


def list_suppliers(
    db: Session,
    tenant_id: int,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Supplier]:
    query = db.query(Supplier).filter(Supplier.user_id == tenant_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Supplier.name.ilike(term),
                Supplier.email.ilike(term),
                Supplier.phone.ilike(term),
                Supplier.address.ilike(term),
                Supplier.notes.ilike(term),
            )
        )
    return (
        query.order_by(Supplier.name, Supplier.supplier_id)
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 500))
        .all()
    )


def delete_supplier(db: Session, tenant_id: int, supplier_id: int) -> None:
    """Remove a supplier that never sold to us; its manual payments go with it."""
    supplier = get_owned(db, Supplier, supplier_id, tenant_id)
    has_purchases = (
        db.query(Purchase.purchase_id).filter(Purchase.supplier_id == supplier_id).first() is not None
    )
    if has_purchases:
        raise RecordInUse("Cannot delete a supplier with purchase history.")
    with atomic(db):
        db.delete(supplier)
    logger.info("Supplier %s deleted", supplier_id)
