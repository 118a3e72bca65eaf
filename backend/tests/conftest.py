"""
Pytest configuration and fixtures for backend tests.
"""

import itertools
import json
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, Batch, BatchDispatch, BatchRelation, Site, Tenant
from rest_api.repositories import SqlEdgeStore
from shared.config.constants import BatchKind, BatchStatus
from shared.infrastructure.db import get_db


# ID counter for SQLite BigInteger compatibility
# SQLite doesn't auto-increment BigInteger, so we need to manage IDs manually
_id_counter = itertools.count(1000)


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def next_id():
    """Generate a unique ID for test entities (SQLite BigInteger workaround)."""
    return next(_id_counter)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def seed_tenant(db_session):
    """Create a test tenant."""
    # Note: BigInteger doesn't auto-increment in SQLite, must specify id
    tenant = Tenant(id=1, name="Test Bakery", slug="test-bakery")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session):
    """A second tenant whose data must never appear in tenant 1 traces."""
    tenant = Tenant(id=2, name="Other Bakery", slug="other-bakery")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def seed_site(db_session, seed_tenant):
    """Create a test site."""
    site = Site(id=1, tenant_id=seed_tenant.id, name="Test Bakery Site", address="1 Test St")
    db_session.add(site)
    db_session.commit()
    db_session.refresh(site)
    return site


class LineageFactory:
    """Builds batches and consumed-into relations for a tenant."""

    def __init__(self, db, tenant_id: int, site_id: int | None = None):
        self.db = db
        self.tenant_id = tenant_id
        self.site_id = site_id

    def batch(
        self,
        code: str,
        kind: str = BatchKind.PRODUCTION_BATCH,
        quantity: str = "100",
        unit: str = "kg",
        status: str = BatchStatus.ACTIVE,
        tenant_id: int | None = None,
        supplier_name: str | None = None,
        allergens: list[str] | None = None,
    ) -> Batch:
        batch = Batch(
            id=next_id(),
            tenant_id=tenant_id or self.tenant_id,
            site_id=self.site_id if tenant_id is None else None,
            code=code,
            kind=kind,
            quantity_produced=Decimal(quantity),
            unit=unit,
            status=status,
            supplier_name=supplier_name,
            allergens=json.dumps(allergens) if allergens is not None else None,
        )
        self.db.add(batch)
        self.db.commit()
        return batch

    def relation(
        self,
        input_batch: Batch,
        output_batch: Batch,
        quantity: str = "1",
        unit: str = "kg",
        tenant_id: int | None = None,
    ) -> BatchRelation:
        relation = BatchRelation(
            id=next_id(),
            tenant_id=tenant_id or input_batch.tenant_id,
            input_batch_id=input_batch.id,
            output_batch_id=output_batch.id,
            quantity_consumed=Decimal(quantity),
            unit=unit,
        )
        self.db.add(relation)
        self.db.commit()
        return relation

    def dispatch(
        self,
        batch: Batch,
        customer_name: str,
        quantity: str = "1",
        unit: str = "kg",
        reference: str | None = None,
        tenant_id: int | None = None,
    ) -> BatchDispatch:
        dispatch = BatchDispatch(
            id=next_id(),
            tenant_id=tenant_id or batch.tenant_id,
            batch_id=batch.id,
            customer_name=customer_name,
            quantity=Decimal(quantity),
            unit=unit,
            delivery_note_reference=reference,
        )
        self.db.add(dispatch)
        self.db.commit()
        return dispatch

    def chain(self, length: int, prefix: str = "CHAIN") -> list[Batch]:
        """Linear chain prefix-0 -> prefix-1 -> ... -> prefix-(length-1)."""
        batches = [self.batch(f"{prefix}-{i:03d}") for i in range(length)]
        for upstream, downstream in zip(batches, batches[1:]):
            self.relation(upstream, downstream, quantity="10")
        return batches


@pytest.fixture
def lineage(db_session, seed_tenant, seed_site):
    """Factory for batches and relations in tenant 1."""
    return LineageFactory(db_session, seed_tenant.id, seed_site.id)


@pytest.fixture
def bakery(lineage):
    """
    Flour-to-loaf lineage:

        RM-FLOUR-001 --100 kg--> DOUGH-550 <--60 kg-- RM-WATER-014
        DOUGH-550 --80 kg--> LOAF-9001
        DOUGH-550 --78 kg--> LOAF-9002
    """
    flour = lineage.batch("RM-FLOUR-001", kind=BatchKind.RAW_MATERIAL_LOT, quantity="100")
    water = lineage.batch("RM-WATER-014", kind=BatchKind.RAW_MATERIAL_LOT, quantity="60")
    dough = lineage.batch("DOUGH-550", quantity="160")
    loaf_1 = lineage.batch("LOAF-9001", kind=BatchKind.FINISHED_GOOD, quantity="80")
    loaf_2 = lineage.batch("LOAF-9002", kind=BatchKind.FINISHED_GOOD, quantity="78")
    lineage.relation(flour, dough, quantity="100")
    lineage.relation(water, dough, quantity="60")
    lineage.relation(dough, loaf_1, quantity="80")
    lineage.relation(dough, loaf_2, quantity="78")
    return {
        "flour": flour,
        "water": water,
        "dough": dough,
        "loaf_1": loaf_1,
        "loaf_2": loaf_2,
    }


class CountingEdgeStore:
    """EdgeStore wrapper recording every level fetch."""

    def __init__(self, inner):
        self.inner = inner
        self.level_calls: list[list[int]] = []

    def get_batch_by_code(self, tenant_id, code):
        return self.inner.get_batch_by_code(tenant_id, code)

    def get_relations_for_batches_at_level(self, tenant_id, batch_ids, direction):
        self.level_calls.append(list(batch_ids))
        return self.inner.get_relations_for_batches_at_level(tenant_id, batch_ids, direction)

    def get_dispatches_for_batches(self, tenant_id, batch_ids):
        return self.inner.get_dispatches_for_batches(tenant_id, batch_ids)


@pytest.fixture
def edge_store(db_session):
    """Counting wrapper over the SQL edge store."""
    return CountingEdgeStore(SqlEdgeStore(db_session))
