from fastapi import APIRouter

from backoffice.api.v1 import (
    health,
    investor_routes,
    purchase_routes,
    sale_routes,
    supplier_routes,
    transaction_routes,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(supplier_routes.router, prefix="/suppliers", tags=["Suppliers"])
api_router.include_router(investor_routes.router, prefix="/investors", tags=["Investors"])
api_router.include_router(purchase_routes.router, prefix="/purchases", tags=["Purchases"])
api_router.include_router(sale_routes.router, prefix="/sales", tags=["Sales"])
api_router.include_router(transaction_routes.router, prefix="/transactions", tags=["Transactions"])
