"""
Directory module.

Reference data that withdrawals point at: customers, their branches,
internal departments and staff.
"""

from . import models  # noqa: F401
