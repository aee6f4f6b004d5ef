from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

from erpdb.database import Base  # noqa: E402
from erpdb.apps.inventory import models as inventory_models  # noqa: E402
from erpdb.apps.purchasing import models as purchasing_models  # noqa: E402
from erpdb.apps.work import models as work_models  # noqa: E402
from erpdb.apps.audit import models as audit_models  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(
        bind=engine,
        tables=[
            inventory_models.Item.__table__,
            inventory_models.StockAdjustment.__table__,
            purchasing_models.Supplier.__table__,
            purchasing_models.PurchaseOrder.__table__,
            purchasing_models.PurchaseOrderItem.__table__,
            work_models.WorkOrder.__table__,
            work_models.WorkOrderItem.__table__,
            audit_models.AuditEvent.__table__,
        ],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_item(db_session):
    """Insert an item directly, bypassing the service layer."""

    def _make_item(sku: str = "SKU-1", *, name: str = None, current_stock: int = 0, min_stock_level: int = 0, **fields):
        item = inventory_models.Item(
            sku=sku,
            name=name or f"Item {sku}",
            category=fields.pop("category", "Parts"),
            unit_of_measure=fields.pop("unit_of_measure", "EA"),
            current_stock=current_stock,
            min_stock_level=min_stock_level,
            unit_cost=fields.pop("unit_cost", 0),
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make_item
