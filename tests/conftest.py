import os
import sys
import tempfile
from pathlib import Path
import pytest

# Ensure project root is on sys.path so tests can import 'decoplan' package
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Point the app at a throw-away sqlite file before anything reads the settings
_TMP_DIR = tempfile.mkdtemp(prefix="decoplan-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"

from fastapi.testclient import TestClient
from decoplan.db import Base, engine, SessionLocal
from decoplan import models
from decoplan.main import app
from decoplan.models import Department, WorkflowState


@pytest.fixture(autouse=True)
def reset_db():
    # Drop all and re-create so every test starts from an empty schema
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_work_center(db):
    def _make(name="Druck-Station 1", department=Department.DRUCK, concurrent_capacity=2, active=True,
              capacity_min=660):
        wc = models.WorkCenter(name=name, department=department, concurrent_capacity=concurrent_capacity,
                               active=active, capacity_min=capacity_min)
        db.add(wc)
        db.commit()
        db.refresh(wc)
        return wc
    return _make


@pytest.fixture
def make_order(db):
    # Inserts an order directly in the requested workflow state
    def _make(workflow=WorkflowState.FUER_PROD, department=Department.DRUCK, title="Vereinstrikots"):
        order = models.Order(title=title, customer="FC Beispiel", department=department, workflow=workflow)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make
