from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from backoffice.models.base import Base


class Sale(Base):
    __tablename__ = "sales"
    __table_args__ = (
        UniqueConstraint("user_id", "invoice_number", name="uq_sales_user_invoice_number"),
    )

    sale_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    investor_id = Column(Integer, ForeignKey("investors.investor_id", ondelete="RESTRICT"), nullable=False, index=True)

    invoice_number = Column(String(255), nullable=False)
    sale_date = Column(Date, nullable=False)

    subtotal = Column(Numeric(15, 2), nullable=False)
    discount_value = Column(Numeric(15, 2), nullable=False, default=0)
    discount_reason = Column(String(255), nullable=True)
    total = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="DZD")
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    investor = relationship("Investor", back_populates="sales")
    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.sale_item_id",
    )
    investor_transactions = relationship(
        "InvestorTransaction",
        back_populates="sale",
        cascade="all, delete",
    )


class SaleItem(Base):
    __tablename__ = "sale_items"

    sale_item_id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.sale_id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_item_id = Column(
        Integer,
        ForeignKey("purchase_items.purchase_item_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = Column(Integer, nullable=False)
    sale_price = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sale = relationship("Sale", back_populates="items")
    purchase_item = relationship("PurchaseItem", back_populates="sale_items")
