from .base import Base
from .user import AppUser
from .supplier import Supplier
from .investor import Investor
from .purchase import Purchase, PurchaseItem
from .sale import Sale, SaleItem
from .ledger import InvestorTransaction, SupplierTransaction
