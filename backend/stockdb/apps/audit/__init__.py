"""
Audit module.

Append-only trail of withdrawal and item changes.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
