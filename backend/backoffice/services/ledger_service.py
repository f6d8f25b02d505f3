import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Query, Session

from backoffice.core.config import settings
from backoffice.core.database import atomic
from backoffice.core.errors import LinkedRecordImmutable, ValidationFailed
from backoffice.models.investor import Investor
from backoffice.models.ledger import (
    TRANSACTION_OUT,
    TRANSACTION_TYPES,
    InvestorTransaction,
    SupplierTransaction,
)
from backoffice.models.purchase import Purchase
from backoffice.models.supplier import Supplier
from backoffice.schemas.ledger import (
    InvestorTransactionIn,
    SupplierTransactionIn,
    TransactionFilters,
    TransactionSummary,
)
from backoffice.services.ownership import get_owned, owns
from backoffice.utils.text_cleaner import clean_optional
from backoffice.utils.validation import FieldErrors

logger = logging.getLogger(__name__)

SUPPLIER = "supplier"
INVESTOR = "investor"
NOTE_MAX_LENGTH = 500

Transaction = Union[SupplierTransaction, InvestorTransaction]
TransactionPayload = Union[SupplierTransactionIn, InvestorTransactionIn]


def purchase_payment_note(purchase_id: int, invoice_number: Optional[str]) -> str:
    note = f"Payment for Purchase #{purchase_id}"
    if invoice_number:
        note += f" (Invoice: {invoice_number})"
    return note


# -------------------------------------------------
# VALIDATION
# -------------------------------------------------

def _validate_supplier_payload(
    db: Session,
    tenant_id: int,
    payload: SupplierTransactionIn,
    manual: bool,
) -> None:
    errors = FieldErrors()
    errors.non_negative(payload.amount, "amount")
    errors.max_length(payload.note, "note", NOTE_MAX_LENGTH)
    if manual:
        errors.check(payload.date <= date.today(), "date", "Date cannot be in the future.")
    errors.check(
        owns(db, Supplier, payload.supplier_id, tenant_id),
        "supplier_id",
        "The selected supplier is invalid.",
    )
    errors.raise_if_any()


def _validate_investor_payload(
    db: Session,
    tenant_id: int,
    payload: InvestorTransactionIn,
    manual: bool,
) -> None:
    errors = FieldErrors()
    if payload.amount is None or payload.amount <= 0:
        errors.add("amount", "Amount must be greater than zero.")
    elif payload.amount > Decimal(settings.MAX_TRANSACTION_AMOUNT):
        errors.add("amount", f"Amount cannot exceed {settings.MAX_TRANSACTION_AMOUNT}.")
    errors.check(payload.type in TRANSACTION_TYPES, "type", "Transaction type must be either In or Out.")
    errors.max_length(payload.note, "note", NOTE_MAX_LENGTH)
    if manual:
        errors.check(payload.date <= date.today(), "date", "Transaction date cannot be in the future.")
    errors.check(
        owns(db, Investor, payload.investor_id, tenant_id),
        "investor_id",
        "The selected investor is invalid.",
    )
    errors.raise_if_any()


# -------------------------------------------------
# WRITES USED INSIDE A WORKFLOW'S ATOMIC SCOPE
# -------------------------------------------------

def record_supplier_transaction(
    db: Session,
    tenant_id: int,
    payload: SupplierTransactionIn,
    purchase_id: Optional[int] = None,
) -> SupplierTransaction:
    """Validate and stage a supplier payment without committing."""
    _validate_supplier_payload(db, tenant_id, payload, manual=purchase_id is None)
    txn = SupplierTransaction(
        user_id=tenant_id,
        supplier_id=payload.supplier_id,
        purchase_id=purchase_id,
        date=payload.date,
        amount=payload.amount,
        note=clean_optional(payload.note),
    )
    db.add(txn)
    db.flush()
    return txn


def record_investor_transaction(
    db: Session,
    tenant_id: int,
    payload: InvestorTransactionIn,
    purchase_id: Optional[int] = None,
    sale_id: Optional[int] = None,
) -> InvestorTransaction:
    """Validate and stage an investor capital movement without committing."""
    manual = purchase_id is None and sale_id is None
    _validate_investor_payload(db, tenant_id, payload, manual=manual)
    txn = InvestorTransaction(
        user_id=tenant_id,
        investor_id=payload.investor_id,
        purchase_id=purchase_id,
        sale_id=sale_id,
        date=payload.date,
        type=payload.type,
        amount=payload.amount,
        note=clean_optional(payload.note),
    )
    db.add(txn)
    db.flush()
    return txn


def sync_purchase_supplier_payment(db: Session, purchase: Purchase, amount_paid: Decimal) -> SupplierTransaction:
    """Mirror a purchase's payment onto its linked supplier transaction, creating it if missing."""
    txn = (
        db.query(SupplierTransaction)
        .filter(SupplierTransaction.purchase_id == purchase.purchase_id)
        .first()
    )
    note = purchase_payment_note(purchase.purchase_id, purchase.supplier_invoice_number)
    if txn is None:
        return record_supplier_transaction(
            db,
            purchase.user_id,
            SupplierTransactionIn(
                supplier_id=purchase.supplier_id,
                date=purchase.purchase_date,
                amount=amount_paid,
                note=note,
            ),
            purchase_id=purchase.purchase_id,
        )
    txn.supplier_id = purchase.supplier_id
    txn.date = purchase.purchase_date
    txn.amount = amount_paid
    txn.note = note
    return txn


def sync_purchase_investor_outflow(db: Session, purchase: Purchase) -> InvestorTransaction:
    """Mirror a purchase's total onto its linked investor Out transaction, creating it if missing."""
    txn = (
        db.query(InvestorTransaction)
        .filter(InvestorTransaction.purchase_id == purchase.purchase_id)
        .first()
    )
    note = purchase_payment_note(purchase.purchase_id, purchase.supplier_invoice_number)
    if txn is None:
        return record_investor_transaction(
            db,
            purchase.user_id,
            InvestorTransactionIn(
                investor_id=purchase.investor_id,
                date=purchase.purchase_date,
                type=TRANSACTION_OUT,
                amount=purchase.total,
                note=note,
            ),
            purchase_id=purchase.purchase_id,
        )
    txn.investor_id = purchase.investor_id
    txn.date = purchase.purchase_date
    txn.type = TRANSACTION_OUT
    txn.amount = purchase.total
    txn.note = note
    return txn


# -------------------------------------------------
# MANUAL ENTRIES
# -------------------------------------------------

def create_supplier_transaction(db: Session, tenant_id: int, payload: SupplierTransactionIn) -> SupplierTransaction:
    with atomic(db):
        txn = record_supplier_transaction(db, tenant_id, payload)
    db.refresh(txn)
    logger.info("Supplier transaction %s recorded for supplier %s", txn.transaction_id, txn.supplier_id)
    return txn


def create_investor_transaction(db: Session, tenant_id: int, payload: InvestorTransactionIn) -> InvestorTransaction:
    with atomic(db):
        txn = record_investor_transaction(db, tenant_id, payload)
    db.refresh(txn)
    logger.info(
        "Investor transaction %s (%s %s) recorded for investor %s",
        txn.transaction_id,
        txn.type,
        txn.amount,
        txn.investor_id,
    )
    return txn


def _model_for(kind: str):
    if kind == SUPPLIER:
        return SupplierTransaction
    if kind == INVESTOR:
        return InvestorTransaction
    raise ValidationFailed({"kind": f"Unknown transaction kind: {kind}"})


def get_transaction(db: Session, tenant_id: int, kind: str, transaction_id: int) -> Transaction:
    model = _model_for(kind)
    return get_owned(db, model, transaction_id, tenant_id, label="Transaction")


def _ensure_unlinked(txn: Transaction, action: str) -> None:
    if txn.is_linked:
        owner = "purchase" if txn.purchase_id is not None else "sale"
        raise LinkedRecordImmutable(
            f"This transaction is linked to a {owner} and cannot be {action}. "
            f"Change the {owner} instead."
        )


def update_transaction(
    db: Session,
    tenant_id: int,
    kind: str,
    transaction_id: int,
    payload: TransactionPayload,
) -> Transaction:
    """Edit a manual ledger entry. Purchase- or sale-linked rows are always rejected."""
    txn = get_transaction(db, tenant_id, kind, transaction_id)
    _ensure_unlinked(txn, "updated")

    if kind == SUPPLIER:
        if not isinstance(payload, SupplierTransactionIn):
            raise ValidationFailed({"body": "Expected a supplier transaction."})
        _validate_supplier_payload(db, tenant_id, payload, manual=True)
    else:
        if not isinstance(payload, InvestorTransactionIn):
            raise ValidationFailed({"body": "Expected an investor transaction."})
        _validate_investor_payload(db, tenant_id, payload, manual=True)

    with atomic(db):
        if kind == SUPPLIER:
            txn.supplier_id = payload.supplier_id
        else:
            txn.investor_id = payload.investor_id
            txn.type = payload.type
        txn.date = payload.date
        txn.amount = payload.amount
        txn.note = clean_optional(payload.note)
    db.refresh(txn)
    logger.info("%s transaction %s updated", kind.capitalize(), transaction_id)
    return txn


def delete_transaction(db: Session, tenant_id: int, kind: str, transaction_id: int) -> None:
    txn = get_transaction(db, tenant_id, kind, transaction_id)
    _ensure_unlinked(txn, "deleted")
    with atomic(db):
        db.delete(txn)
    logger.info("%s transaction %s deleted", kind.capitalize(), transaction_id)


# -------------------------------------------------
# LISTINGS
# -------------------------------------------------

def _summarize(query: Query, amount_col) -> TransactionSummary:
    row = query.with_entities(
        func.count(),
        func.coalesce(func.sum(amount_col), 0),
        func.coalesce(func.avg(amount_col), 0),
        func.coalesce(func.max(amount_col), 0),
        func.coalesce(func.min(amount_col), 0),
    ).one()
    count, total, average, maximum, minimum = row
    return TransactionSummary(
        total_transactions=count or 0,
        total_amount=Decimal(str(total)),
        average_amount=Decimal(str(average)).quantize(Decimal("0.01")),
        max_amount=Decimal(str(maximum)),
        min_amount=Decimal(str(minimum)),
    )


def _apply_common_filters(query: Query, model, filters: TransactionFilters) -> Query:
    if filters.start_date:
        query = query.filter(model.date >= filters.start_date)
    if filters.end_date:
        query = query.filter(model.date <= filters.end_date)
    if filters.amount_min is not None:
        query = query.filter(model.amount >= filters.amount_min)
    if filters.amount_max is not None:
        query = query.filter(model.amount <= filters.amount_max)
    return query


def list_supplier_transactions(
    db: Session,
    tenant_id: int,
    filters: TransactionFilters,
) -> Tuple[List[SupplierTransaction], TransactionSummary]:
    # Zero-amount rows are unpaid purchases; they carry no payment to show
    query = (
        db.query(SupplierTransaction)
        .join(Supplier, Supplier.supplier_id == SupplierTransaction.supplier_id)
        .filter(SupplierTransaction.user_id == tenant_id, SupplierTransaction.amount > 0)
    )
    if filters.search:
        term = f"%{filters.search.strip()}%"
        query = query.filter(
            or_(
                Supplier.name.ilike(term),
                Supplier.email.ilike(term),
                Supplier.phone.ilike(term),
                SupplierTransaction.note.ilike(term),
            )
        )
    if filters.supplier_id:
        query = query.filter(SupplierTransaction.supplier_id == filters.supplier_id)
    query = _apply_common_filters(query, SupplierTransaction, filters)

    summary = _summarize(query, SupplierTransaction.amount)
    rows = (
        query.order_by(SupplierTransaction.date.desc(), SupplierTransaction.transaction_id.desc())
        .offset(max(filters.offset, 0))
        .limit(min(max(filters.limit, 1), 500))
        .all()
    )
    return rows, summary


def list_investor_transactions(
    db: Session,
    tenant_id: int,
    filters: TransactionFilters,
) -> Tuple[List[InvestorTransaction], TransactionSummary]:
    query = (
        db.query(InvestorTransaction)
        .join(Investor, Investor.investor_id == InvestorTransaction.investor_id)
        .filter(InvestorTransaction.user_id == tenant_id)
    )
    if filters.search:
        term = f"%{filters.search.strip()}%"
        query = query.filter(
            or_(
                Investor.name.ilike(term),
                Investor.email.ilike(term),
                Investor.phone.ilike(term),
                InvestorTransaction.note.ilike(term),
                cast(InvestorTransaction.type, String).ilike(term),
            )
        )
    if filters.investor_id:
        query = query.filter(InvestorTransaction.investor_id == filters.investor_id)
    if filters.type:
        if filters.type not in TRANSACTION_TYPES:
            raise ValidationFailed({"type": "Transaction type must be either In or Out."})
        query = query.filter(InvestorTransaction.type == filters.type)
    query = _apply_common_filters(query, InvestorTransaction, filters)

    summary = _summarize(query, InvestorTransaction.amount)
    rows = (
        query.order_by(InvestorTransaction.updated_at.desc(), InvestorTransaction.transaction_id.desc())
        .offset(max(filters.offset, 0))
        .limit(min(max(filters.limit, 1), 500))
        .all()
    )
    return rows, summary

