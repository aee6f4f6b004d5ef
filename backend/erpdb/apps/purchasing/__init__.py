"""
Purchasing module.

Suppliers, purchase orders and receipt of ordered quantities into stock.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
