from hybrid_inventory.storage.backends import JsonFileStore, MemoryStore
from hybrid_inventory.storage.base import StorageProvider
from hybrid_inventory.storage.coordinator import (
    CollectionAccessor,
    HybridCoordinator,
    OperationKind,
    create_coordinator,
)
from hybrid_inventory.storage.errors import (
    AuthenticationError,
    BackupNotSupportedError,
    ConnectivityError,
    DuplicateKeyError,
    InsufficientStockError,
    NotFoundError,
    OperationTimeout,
    SchemaMismatchError,
    StorageError,
    StorageUnavailable,
    SyncError,
    ValidationError,
)
from hybrid_inventory.storage.local import STORAGE_VERSION, LocalProvider
from hybrid_inventory.storage.remote import RemoteProvider

__all__ = [
    "AuthenticationError",
    "BackupNotSupportedError",
    "CollectionAccessor",
    "ConnectivityError",
    "DuplicateKeyError",
    "HybridCoordinator",
    "InsufficientStockError",
    "JsonFileStore",
    "LocalProvider",
    "MemoryStore",
    "NotFoundError",
    "OperationKind",
    "OperationTimeout",
    "RemoteProvider",
    "STORAGE_VERSION",
    "SchemaMismatchError",
    "StorageError",
    "StorageProvider",
    "StorageUnavailable",
    "SyncError",
    "ValidationError",
    "create_coordinator",
]
