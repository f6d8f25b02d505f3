from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PartyBase(BaseModel):
    name: str = Field(..., examples=["Sarl El Baraka"])
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, examples=["0550 12 34 56"])
    address: Optional[str] = None
    notes: Optional[str] = None


class SupplierCreate(PartyBase):
    pass


class SupplierUpdate(PartyBase):
    pass


class SupplierOut(PartyBase):
    supplier_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvestorCreate(PartyBase):
    pass


class InvestorUpdate(PartyBase):
    pass


class InvestorOut(PartyBase):
    investor_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
