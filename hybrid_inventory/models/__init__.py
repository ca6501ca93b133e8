from hybrid_inventory.models.entities import (
    AlertSeverity,
    AutomationRunReport,
    Collection,
    CoordinatorState,
    OrderStatus,
    ProviderKind,
    PurchaseOrderStatus,
    QuoteStatus,
    RuleTrigger,
    RuleType,
    StockAlert,
    StockMovementType,
    StorageInfo,
    StorageMode,
    SyncStatus,
    UserRole,
)
from hybrid_inventory.models.schema import SCHEMAS, EntitySchema, get_schema

__all__ = [
    "AlertSeverity",
    "AutomationRunReport",
    "Collection",
    "CoordinatorState",
    "EntitySchema",
    "OrderStatus",
    "ProviderKind",
    "PurchaseOrderStatus",
    "QuoteStatus",
    "RuleTrigger",
    "RuleType",
    "SCHEMAS",
    "StockAlert",
    "StockMovementType",
    "StorageInfo",
    "StorageMode",
    "SyncStatus",
    "UserRole",
    "get_schema",
]
