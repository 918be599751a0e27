"""Database utilities and models."""

from care_calendar.db.base import Base
from care_calendar.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
