"""
State store: keyed persistence of the activity collection per address.

InMemoryStateStore for tests and single-process runs; SqlStateStore
(SQLAlchemy; SQLite by default, any DATABASE_URL otherwise) for durability.
Both speak {signature: Activity}.
"""

from wallet_activity.database.memory_store import InMemoryStateStore
from wallet_activity.database.sql_store import SqlStateStore, WalletActivityRow

__all__ = ["InMemoryStateStore", "SqlStateStore", "WalletActivityRow"]
