# Storage: optional SQLAlchemy persistence (enabled by DATABASE_URL).

from storage.database import Database, get_db, set_db

__all__ = ["Database", "get_db", "set_db"]
