"""
Inventory module.

Item registry: one row per serialised physical item with its current
stock status and branch reservation.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
