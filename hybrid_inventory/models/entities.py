"""Depolama ve otomasyon katmanı veri modelleri."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


class Collection(str, Enum):
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    ORDERS = "orders"
    SUPPLIERS = "suppliers"
    QUOTATIONS = "quotations"
    USERS = "users"
    SUPPLIER_PRICES = "supplierPrices"
    PURCHASE_ORDERS = "purchaseOrders"
    AUTOMATION_RULES = "automationRules"
    DEMAND_FORECASTS = "demandForecasts"
    STOCK_MOVEMENTS = "stockMovements"


class StorageMode(str, Enum):
    LOCAL = "local"
    CLOUD = "cloud"
    HYBRID = "hybrid"


class ProviderKind(str, Enum):
    LOCAL = "local"
    CLOUD = "cloud"


class CoordinatorState(str, Enum):
    LOCAL_ACTIVE = "Local-Active"
    REMOTE_ACTIVE = "Remote-Active"


class RuleType(str, Enum):
    REORDER_POINT = "reorder_point"
    LOW_STOCK = "low_stock"
    SUPPLIER_PRICE = "supplier_price"
    DEMAND_FORECAST = "demand_forecast"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    CONFIRMED = "confirmed"
    PARTIAL = "partial"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class UserRole(str, Enum):
    ADMIN = "admin"
    WAREHOUSE = "warehouse"


class StockMovementType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    RESERVED = "reserved"
    UNRESERVED = "unreserved"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class StorageInfo:
    mode: StorageMode
    is_online: bool
    primary_provider: ProviderKind
    secondary_provider: Optional[ProviderKind]
    sync_enabled: bool
    sync_interval_ms: int

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "isOnline": self.is_online,
            "primaryProvider": self.primary_provider.value,
            "secondaryProvider": self.secondary_provider.value if self.secondary_provider else None,
            "syncEnabled": self.sync_enabled,
            "syncIntervalMs": self.sync_interval_ms,
        }


@dataclass
class SyncStatus:
    last_attempt_at: Optional[str] = None
    last_success_at: Optional[str] = None
    success: Optional[bool] = None
    error: Optional[str] = None
    pushed: dict[str, int] = field(default_factory=dict)
    consecutive_failures: int = 0

    def to_dict(self) -> dict:
        return {
            "lastAttemptAt": self.last_attempt_at,
            "lastSuccessAt": self.last_success_at,
            "success": self.success,
            "error": self.error,
            "pushed": dict(self.pushed),
            "consecutiveFailures": self.consecutive_failures,
        }


@dataclass
class StockAlert:
    alert_id: str
    rule_id: str
    product_id: str
    sku: str
    current_stock: int
    threshold: int
    severity: AlertSeverity
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass
class RuleTrigger:
    rule_id: str
    rule_type: RuleType
    reason: str
    trigger_count: int
    purchase_order_id: Optional[str] = None
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass
class AutomationRunReport:
    rules_evaluated: int = 0
    triggers: list[RuleTrigger] = field(default_factory=list)
    purchase_orders: list[dict] = field(default_factory=list)
    alerts: list[StockAlert] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    started_at: str = field(default_factory=utc_now_iso)

    def summary(self) -> dict:
        return {
            "rules_evaluated": self.rules_evaluated,
            "triggers": len(self.triggers),
            "purchase_orders": [po["id"] for po in self.purchase_orders],
            "alerts": len(self.alerts),
            "errors": list(self.errors),
            "started_at": self.started_at,
        }

    def to_dict(self) -> dict:
        data = asdict(self)
        for trigger in data["triggers"]:
            trigger["rule_type"] = trigger["rule_type"].value
        for alert in data["alerts"]:
            alert["severity"] = alert["severity"].value
        return data
