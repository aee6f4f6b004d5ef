"""
Work module.

Work orders, the items they use, and consumption of those items from stock
when a work order is completed.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
