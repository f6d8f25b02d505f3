from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.api.v1.router import api_router
from backoffice.core.config import settings
from backoffice.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        description="Suppliers, investors, purchases, sales and their ledgers.",
    )

    # Browser callers identify the tenant with a custom header
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-Tenant-Id"],
    )

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return app


app = create_app()
