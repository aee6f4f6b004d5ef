"""
Inventory module.

Handles the item catalogue, the stock ledger and the low-stock report.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
