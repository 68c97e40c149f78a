"""Database package"""

from practice_api.db.session import AsyncSessionLocal, engine, get_db
from practice_api.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
