"""Storage backends for GigFlow."""

from gigflow.storage.base import MarketplaceStorage, Transaction
from gigflow.storage.schema import SCHEMA_VERSION, init_db
from gigflow.storage.sqlite import SQLiteStorage, StoreTransaction

__all__ = [
    "MarketplaceStorage",
    "Transaction",
    "SQLiteStorage",
    "StoreTransaction",
    "SCHEMA_VERSION",
    "init_db",
]
