"""
Relational storage for orders, receipts and staff profiles.
"""
from app.db.database import Base, async_session_maker, engine, get_async_session

__all__ = ["Base", "async_session_maker", "engine", "get_async_session"]
