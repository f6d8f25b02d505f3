from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from backoffice.models.base import Base

TRANSACTION_IN = "In"
TRANSACTION_OUT = "Out"
TRANSACTION_TYPES = (TRANSACTION_IN, TRANSACTION_OUT)


class SupplierTransaction(Base):
    """Payment made to a supplier. Rows with a purchase_id belong to that purchase."""

    __tablename__ = "supplier_transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_supplier_transactions_amount_non_negative"),
    )

    transaction_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.supplier_id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.purchase_id", ondelete="CASCADE"), nullable=True, index=True)

    date = Column(Date, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier", back_populates="transactions")
    purchase = relationship("Purchase", back_populates="supplier_transactions")

    @property
    def is_linked(self) -> bool:
        return self.purchase_id is not None


class InvestorTransaction(Base):
    """Capital moving in or out of an investor's cash box."""

    __tablename__ = "investor_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_investor_transactions_amount_positive"),
    )

    transaction_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    investor_id = Column(Integer, ForeignKey("investors.investor_id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.purchase_id", ondelete="CASCADE"), nullable=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.sale_id", ondelete="CASCADE"), nullable=True, index=True)

    date = Column(Date, nullable=False)
    type = Column(Enum(*TRANSACTION_TYPES, name="investor_transaction_type"), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    investor = relationship("Investor", back_populates="transactions")
    purchase = relationship("Purchase", back_populates="investor_transactions")
    sale = relationship("Sale", back_populates="investor_transactions")

    @property
    def is_linked(self) -> bool:
        return self.purchase_id is not None or self.sale_id is not None
