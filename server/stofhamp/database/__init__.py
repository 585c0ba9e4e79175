"""Database layer: engine, models and queries."""

from .db import get_session, init_db, close_db
from .models import Base

__all__ = ["get_session", "init_db", "close_db", "Base"]
