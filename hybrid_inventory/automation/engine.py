"""Otomasyon motoru - kayıtlı kuralları envanter durumuna karşı değerlendirir.

Kural tipleri:
- reorder_point: minimum stok altındaki ürünler için tek kalemli PO oluşturur
- low_stock: eşik altındaki ürünler için uyarı yayınlar (PO oluşturmaz)
- supplier_price: zaman penceresindeki yeni fiyatlar için tetiklenir
- demand_forecast: tarama hedefi değil; generate_demand_forecast ile doğrudan çağrılır

Bir kuralın hatası diğer kuralların değerlendirilmesini durdurmaz.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from hybrid_inventory.automation.forecast import naive_forecast
from hybrid_inventory.automation.purchasing import (
    best_supplier_price,
    build_purchase_order,
    is_low_stock,
    parse_time,
    reorder_quantity,
)
from hybrid_inventory.events import EventBus, EventType
from hybrid_inventory.models.entities import (
    AlertSeverity,
    AutomationRunReport,
    Collection,
    RuleTrigger,
    RuleType,
    StockAlert,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_PRICE_TIMEFRAME_DAYS = 30
BATCH_PO_CREATOR = "ai_automation"


class RuleEvaluationError(Exception):
    """Tek bir kuralın değerlendirilmesi sırasında oluşan hata."""

    def __init__(self, rule_id: str, rule_type: str, cause: Exception):
        super().__init__(f"Kural {rule_id} ({rule_type}) değerlendirilemedi: {cause}")
        self.rule_id = rule_id
        self.rule_type = rule_type
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            "ruleId": self.rule_id,
            "ruleType": self.rule_type,
            "error": str(self.cause),
            "errorType": type(self.cause).__name__,
        }


@dataclass
class _RuleContext:
    products: list[dict]
    suppliers: list[dict]
    supplier_prices: list[dict]
    now: datetime


def calculate_severity(quantity: int, threshold: int) -> AlertSeverity:
    """Stok seviyesine göre uyarı şiddetini hesaplar."""
    if quantity <= 0 or threshold <= 0:
        return AlertSeverity.CRITICAL
    ratio = quantity / threshold
    if ratio < 0.25:
        return AlertSeverity.HIGH
    if ratio < 0.5:
        return AlertSeverity.MEDIUM
    return AlertSeverity.LOW


def _in_scope(rule: dict, product: dict) -> bool:
    product_ids = (rule.get("conditions") or {}).get("productIds")
    return product_ids is None or product["id"] in product_ids


class AutomationEngine:
    """Koordinatör üzerinden okuyup yazan kural değerlendiricisi."""

    def __init__(self, coordinator, event_bus: Optional[EventBus] = None, clock: Optional[Callable[[], datetime]] = None):
        self.coordinator = coordinator
        self.event_bus = event_bus or coordinator.event_bus
        self._clock = clock or utc_now
        self._task: Optional[asyncio.Task] = None

    # --- Kural taraması ---

    async def check_automation_rules(self) -> AutomationRunReport:
        """Tüm aktif kuralları değerlendirir ve çalışma raporu döndürür."""
        now = self._clock()
        report = AutomationRunReport(started_at=now.isoformat())

        rules = [r for r in await self.coordinator.list(Collection.AUTOMATION_RULES) if r.get("isActive")]
        context = _RuleContext(
            products=await self.coordinator.list(Collection.PRODUCTS),
            suppliers=await self.coordinator.list(Collection.SUPPLIERS),
            supplier_prices=await self.coordinator.list(Collection.SUPPLIER_PRICES),
            now=now,
        )

        for rule in rules:
            report.rules_evaluated += 1
            try:
                handler = self._HANDLERS[RuleType(rule.get("type"))]
                await handler(self, rule, context, report)
            except Exception as e:
                error = RuleEvaluationError(rule.get("id", "?"), str(rule.get("type")), e)
                logger.error("%s", error)
                report.errors.append(error.to_dict())

        logger.info(
            "Otomasyon taraması: %d kural, %d tetiklenme, %d PO, %d uyarı, %d hata",
            report.rules_evaluated,
            len(report.triggers),
            len(report.purchase_orders),
            len(report.alerts),
            len(report.errors),
        )
        return report

    async def _record_trigger(
        self,
        rule: dict,
        reason: str,
        report: AutomationRunReport,
        now: datetime,
        purchase_order_id: Optional[str] = None,
    ) -> dict:
        # Sayaç her seferinde güncel kayıttan artırılır
        current = await self.coordinator.get(Collection.AUTOMATION_RULES, rule["id"])
        updated = await self.coordinator.update(
            Collection.AUTOMATION_RULES,
            rule["id"],
            {"triggerCount": current.get("triggerCount", 0) + 1, "lastTriggered": now.isoformat()},
        )
        trigger = RuleTrigger(
            rule_id=rule["id"],
            rule_type=RuleType(rule["type"]),
            reason=reason,
            trigger_count=updated["triggerCount"],
            purchase_order_id=purchase_order_id,
            timestamp=now.isoformat(),
        )
        report.triggers.append(trigger)
        self.event_bus.emit(
            EventType.RULE_TRIGGERED,
            "automation",
            ruleId=rule["id"],
            ruleType=rule["type"],
            reason=reason,
            triggerCount=updated["triggerCount"],
            purchaseOrderId=purchase_order_id,
        )
        return updated

    async def _check_reorder_points(self, rule: dict, ctx: _RuleContext, report: AutomationRunReport) -> None:
        if not (rule.get("actions") or {}).get("createPO"):
            return
        supplier_ids = {s["id"] for s in ctx.suppliers}
        for product in ctx.products:
            if not (is_low_stock(product) and _in_scope(rule, product)):
                continue
            best = best_supplier_price(ctx.supplier_prices, product["id"], ctx.now)
            if best is None or best["supplierId"] not in supplier_ids:
                logger.info("Uygun tedarikçi fiyatı yok: %s", product.get("sku"))
                continue

            quantity = reorder_quantity(product)
            if quantity <= 0:
                logger.warning("Sipariş miktarı sıfır, PO atlandı: %s", product.get("sku"))
                continue
            reason = f"Low stock alert: {product.get('name')} ({product.get('stock', 0)} remaining)"
            po = await self.coordinator.create(
                Collection.PURCHASE_ORDERS,
                build_purchase_order(best["supplierId"], [(product, quantity, best["price"])], reason, ctx.now),
            )
            report.purchase_orders.append(po)
            await self._record_trigger(rule, reason, report, ctx.now, purchase_order_id=po["id"])

    async def _check_low_stock(self, rule: dict, ctx: _RuleContext, report: AutomationRunReport) -> None:
        stock_level = (rule.get("conditions") or {}).get("stockLevel")
        flagged = []
        for product in ctx.products:
            if not _in_scope(rule, product):
                continue
            threshold = stock_level if stock_level is not None else product.get("minimumStock", 0)
            if product.get("stock", 0) <= threshold:
                flagged.append((product, threshold))

        if not flagged or not (rule.get("actions") or {}).get("sendAlert"):
            return

        for product, threshold in flagged:
            alert = StockAlert(
                alert_id=str(uuid.uuid4()),
                rule_id=rule["id"],
                product_id=product["id"],
                sku=product.get("sku", ""),
                current_stock=product.get("stock", 0),
                threshold=threshold,
                severity=calculate_severity(product.get("stock", 0), threshold),
                timestamp=ctx.now.isoformat(),
            )
            report.alerts.append(alert)
            self.event_bus.emit(
                EventType.LOW_STOCK_ALERT,
                "automation",
                ruleId=rule["id"],
                productId=alert.product_id,
                sku=alert.sku,
                currentStock=alert.current_stock,
                threshold=threshold,
                severity=alert.severity.value,
                notifyUsers=list((rule.get("actions") or {}).get("notifyUsers") or []),
            )
        reason = f"Low stock alert: {len(flagged)} products below threshold"
        await self._record_trigger(rule, reason, report, ctx.now)

    async def _check_supplier_prices(self, rule: dict, ctx: _RuleContext, report: AutomationRunReport) -> None:
        timeframe = (rule.get("conditions") or {}).get("timeframe")
        if timeframe is None:
            timeframe = DEFAULT_PRICE_TIMEFRAME_DAYS
        window_start = ctx.now - timedelta(days=timeframe)
        recent = []
        for price in ctx.supplier_prices:
            created = parse_time(price.get("createdAt"))
            if created is not None and window_start <= created <= ctx.now:
                recent.append(price)
        if recent:
            reason = f"{len(recent)} supplier prices updated in the last {timeframe} days"
            await self._record_trigger(rule, reason, report, ctx.now)

    async def _skip_direct_rule(self, rule: dict, ctx: _RuleContext, report: AutomationRunReport) -> None:
        logger.debug("Kural %s doğrudan çağrılır, taramada atlanıyor", rule.get("id"))

    _HANDLERS = {
        RuleType.REORDER_POINT: _check_reorder_points,
        RuleType.LOW_STOCK: _check_low_stock,
        RuleType.SUPPLIER_PRICE: _check_supplier_prices,
        RuleType.DEMAND_FORECAST: _skip_direct_rule,
    }
    assert set(_HANDLERS) == set(RuleType), "Her kural tipi için handler tanımlı olmalı"

    # --- Toplu PO ve tahmin ---

    async def auto_generate_purchase_orders(self) -> list[dict]:
        """Düşük stoklu ürünleri en iyi tedarikçiye göre gruplayıp tedarikçi başına bir PO oluşturur."""
        now = self._clock()
        products = await self.coordinator.list(Collection.PRODUCTS)
        prices = await self.coordinator.list(Collection.SUPPLIER_PRICES)

        groups: dict[str, list[tuple[dict, int, float]]] = {}
        for product in products:
            if not is_low_stock(product):
                continue
            best = best_supplier_price(prices, product["id"], now)
            if best is None:
                continue
            quantity = reorder_quantity(product)
            if quantity <= 0:
                logger.warning("Sipariş miktarı sıfır, satır atlandı: %s", product.get("sku"))
                continue
            groups.setdefault(best["supplierId"], []).append((product, quantity, best["price"]))

        created = []
        for supplier_id, lines in groups.items():
            reason = f"Auto-generated PO for {len(lines)} low-stock products"
            po = await self.coordinator.create(
                Collection.PURCHASE_ORDERS,
                build_purchase_order(supplier_id, lines, reason, now, created_by=BATCH_PO_CREATOR),
            )
            created.append(po)
        logger.info("%d tedarikçi için toplu PO oluşturuldu", len(created))
        return created

    async def generate_demand_forecast(self, product_id: str) -> dict:
        """Ürün için basit talep tahmini üretir ve kaydeder."""
        await self.coordinator.get(Collection.PRODUCTS, product_id)
        orders = await self.coordinator.list(Collection.ORDERS)
        forecast = await self.coordinator.create(Collection.DEMAND_FORECASTS, naive_forecast(product_id, orders))
        logger.info(
            "Talep tahmini: %s -> %d (önerilen stok %d)",
            product_id,
            forecast["predictedDemand"],
            forecast["recommendedStock"],
        )
        return forecast

    # --- Zamanlayıcı ---

    async def start(self, interval_s: float) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s pozitif olmalı")
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run_periodically(interval_s))
        logger.info("Otomasyon zamanlayıcısı başlatıldı (%ss)", interval_s)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Otomasyon zamanlayıcısı durduruldu")

    @property
    def is_running(self) -> bool:
        return self._task is not None

    async def _run_periodically(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                await self.check_automation_rules()
            except Exception:
                logger.exception("Otomasyon taraması başarısız, bir sonraki turda tekrar denenecek")
