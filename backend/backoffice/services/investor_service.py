import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backoffice.core.database import atomic
from backoffice.core.errors import RecordInUse
from backoffice.models.investor import Investor
from backoffice.models.purchase import Purchase
from backoffice.schemas.party import InvestorCreate, InvestorUpdate
from backoffice.services import balance_service
from backoffice.services.ownership import get_owned
from backoffice.utils.text_cleaner import clean_optional, normalize_whitespace
from backoffice.utils.validation import FieldErrors, validate_party

logger = logging.getLogger(__name__)


def _email_taken(db: Session, tenant_id: int, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Investor.investor_id).filter(
        Investor.user_id == tenant_id,
        func.lower(Investor.email) == email.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Investor.investor_id != exclude_id)
    return query.first() is not None


def _validate(db: Session, tenant_id: int, payload: InvestorCreate, exclude_id: Optional[int] = None) -> None:
    errors = FieldErrors()
    validate_party(payload, errors)
    email = clean_optional(payload.email)
    if email and "email" not in errors.errors and _email_taken(db, tenant_id, email, exclude_id):
        errors.add("email", "The email has already been taken.")
    errors.raise_if_any()


def _apply(investor: Investor, payload: InvestorCreate) -> None:
    investor.name = normalize_whitespace(payload.name)
    investor.email = clean_optional(payload.email)
    investor.phone = clean_optional(payload.phone)
    investor.address = clean_optional(payload.address)
    investor.notes = payload.notes.strip() if payload.notes and payload.notes.strip() else None


def create_investor(db: Session, tenant_id: int, payload: InvestorCreate) -> Investor:
    _validate(db, tenant_id, payload)
    with atomic(db):
        investor = Investor(user_id=tenant_id)
        _apply(investor, payload)
        db.add(investor)
    db.refresh(investor)
    logger.info("Investor %s created: %s", investor.investor_id, investor.name)
    return investor


def update_investor(db: Session, tenant_id: int, investor_id: int, payload: InvestorUpdate) -> Investor:
    investor = get_owned(db, Investor, investor_id, tenant_id)
    _validate(db, tenant_id, payload, exclude_id=investor_id)
    with atomic(db):
        _apply(investor, payload)
    db.refresh(investor)
    logger.info("Investor %s updated", investor_id)
    return investor


def get_investor(db: Session, tenant_id: int, investor_id: int) -> Investor:
    return get_owned(db, Investor, investor_id, tenant_id)


def list_investors(
    db: Session,
    tenant_id: int,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Investor]:
    query = db.query(Investor).filter(Investor.user_id == tenant_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Investor.name.ilike(term),
                Investor.email.ilike(term),
                Investor.phone.ilike(term),
                Investor.address.ilike(term),
                Investor.notes.ilike(term),
            )
        )
    return (
        query.order_by(Investor.name, Investor.investor_id)
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 500))
        .all()
    )


def delete_investor(db: Session, tenant_id: int, investor_id: int) -> None:
    """
    Remove an investor whose books are empty.

    Any profit, any capital left (available or tied up in stock), or any
    purchase they funded blocks the delete.
    """
    investor = get_owned(db, Investor, investor_id, tenant_id)
    balances = balance_service.investor_balances(db, tenant_id, investor_id)
    if balances.profit != 0 or balances.total_capital != 0:
        raise RecordInUse(
            f"Cannot delete an investor with open balances "
            f"(capital: {balances.total_capital}, profit: {balances.profit})."
        )
    has_purchases = (
        db.query(Purchase.purchase_id).filter(Purchase.investor_id == investor_id).first() is not None
    )
    if has_purchases:
        raise RecordInUse("Cannot delete an investor who funded purchases.")
    with atomic(db):
        db.delete(investor)
    logger.info("Investor %s deleted", investor_id)
