# backend/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets a fresh in-memory SQLite database (StaticPool)
# - Foreign keys are enforced through build_engine's connect hook
# - Two tenants exist so isolation can be asserted everywhere
# - Invoice files live under tmp_path, never the real storage dir
# ---------------------------------------------------------------------
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.core.database import build_engine
from backoffice.deps import get_db
from backoffice.main import create_app
from backoffice.models import AppUser, Base
from backoffice.schemas.ledger import InvestorTransactionIn
from backoffice.schemas.party import InvestorCreate, SupplierCreate
from backoffice.services import investor_service, ledger_service, supplier_service
from backoffice.services.invoice_storage import InvoiceStorage
from helpers import PURCHASE_DATE


@pytest.fixture()
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(eng)
        eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, username):
    user = AppUser(username=username, full_name=username.title())
    db.add(user)
    db.commit()
    return user.user_id


@pytest.fixture()
def tenant_id(db):
    return _make_user(db, "owner")


@pytest.fixture()
def other_tenant_id(db):
    return _make_user(db, "neighbour")


@pytest.fixture()
def supplier(db, tenant_id):
    return supplier_service.create_supplier(
        db,
        tenant_id,
        SupplierCreate(name="Sarl El Baraka", email="contact@elbaraka.dz", phone="0550 12 34 56"),
    )


@pytest.fixture()
def investor(db, tenant_id):
    return investor_service.create_investor(db, tenant_id, InvestorCreate(name="Karim", phone="0661 00 00 00"))


@pytest.fixture()
def funded_investor(db, tenant_id, investor):
    """Investor with 10 000 of capital paid in."""
    ledger_service.create_investor_transaction(
        db,
        tenant_id,
        InvestorTransactionIn(
            investor_id=investor.investor_id,
            date=PURCHASE_DATE,
            type="In",
            amount=Decimal("10000"),
            note="Initial capital",
        ),
    )
    return investor


@pytest.fixture()
def storage(tmp_path):
    root = tmp_path / "invoices"
    root.mkdir()
    return InvoiceStorage(root)


@pytest.fixture()
def client(session_factory, tenant_id):
    app = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        test_client.headers.update({"X-Tenant-Id": str(tenant_id)})
        yield test_client
    app.dependency_overrides.clear()
