# database/__init__.py
from database.db_manager import JobStore

__all__ = ["JobStore"]
