# backend/erpdb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in erpdb/apps/*/models.py.
"""

from .apps.inventory import models as inventory_models      # items + stock ledger
from .apps.purchasing import models as purchasing_models    # suppliers + purchase orders
from .apps.work import models as work_models                # work orders + consumed items
from .apps.audit import models as audit_models              # append-only audit events

__all__ = [
    "inventory_models",
    "purchasing_models",
    "work_models",
    "audit_models",
]
