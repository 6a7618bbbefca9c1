"""Database package"""

from helpdesk.db.session import AsyncSessionLocal, engine, get_db
from helpdesk.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
