"""Database utilities and models."""

from easymode.db.base import Base
from easymode.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
