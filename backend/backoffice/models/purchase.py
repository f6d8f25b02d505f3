from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from backoffice.models.base import Base


class Purchase(Base):
    __tablename__ = "purchases"

    purchase_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.supplier_id", ondelete="RESTRICT"), nullable=False, index=True)
    investor_id = Column(Integer, ForeignKey("investors.investor_id", ondelete="RESTRICT"), nullable=False, index=True)

    supplier_invoice_number = Column(String(255), nullable=True)
    purchase_date = Column(Date, nullable=False)

    # total = subtotal - discount_value + shipping_value, as supplied by the caller
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)
    discount_reason = Column(String(255), nullable=True)
    shipping_value = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_note = Column(String(255), nullable=True)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="DZD")

    invoice_image = Column(String(255), nullable=True)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier", back_populates="purchases")
    investor = relationship("Investor", back_populates="purchases")
    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.purchase_item_id",
    )
    supplier_transactions = relationship(
        "SupplierTransaction",
        back_populates="purchase",
        cascade="all, delete",
    )
    investor_transactions = relationship(
        "InvestorTransaction",
        back_populates="purchase",
        cascade="all, delete",
    )


class PurchaseItem(Base):
    __tablename__ = "purchase_items"
    __table_args__ = (
        CheckConstraint("quantity_selled >= 0", name="ck_purchase_items_selled_non_negative"),
        CheckConstraint("quantity_selled <= quantity", name="ck_purchase_items_selled_within_quantity"),
    )

    purchase_item_id = Column(Integer, primary_key=True, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.purchase_id", ondelete="CASCADE"), nullable=False, index=True)

    product_name = Column(String(255), nullable=False)
    barcode_prinsipal = Column(String(255), nullable=True)
    # Assigned once after insert, never rewritten
    barcode_generated = Column(String(255), nullable=True, index=True)

    quantity = Column(Integer, nullable=False, default=1)
    quantity_selled = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    sale_price = Column(Numeric(12, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    purchase = relationship("Purchase", back_populates="items")
    sale_items = relationship("SaleItem", back_populates="purchase_item")
