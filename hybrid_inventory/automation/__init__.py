from hybrid_inventory.automation.engine import AutomationEngine, RuleEvaluationError, calculate_severity
from hybrid_inventory.automation.forecast import naive_forecast
from hybrid_inventory.automation.purchasing import best_supplier_price, reorder_quantity
from hybrid_inventory.automation.stock import StockService

__all__ = [
    "AutomationEngine",
    "RuleEvaluationError",
    "StockService",
    "best_supplier_price",
    "calculate_severity",
    "naive_forecast",
    "reorder_quantity",
]
