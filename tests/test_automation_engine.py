"""Otomasyon motoru unit testleri - kurallar, toplu PO, talep tahmini."""

import asyncio
from datetime import datetime, timezone

import pytest

from conftest import sample_product
from hybrid_inventory.automation import AutomationEngine, calculate_severity, naive_forecast
from hybrid_inventory.automation.purchasing import best_supplier_price, reorder_quantity
from hybrid_inventory.events import EventType
from hybrid_inventory.models.entities import AlertSeverity, Collection
from hybrid_inventory.storage.errors import NotFoundError

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def coordinator(make_coordinator):
    return make_coordinator()


@pytest.fixture
def engine(coordinator):
    return AutomationEngine(coordinator, clock=lambda: NOW)


async def _supplier(coordinator, name="Tedarikçi A"):
    return await coordinator.suppliers.create({"name": name})


async def _price(coordinator, supplier_id, product_id, price, **extra):
    return await coordinator.supplier_prices.create(
        {"supplierId": supplier_id, "productId": product_id, "price": price, **extra}
    )


async def _rule(coordinator, rule_type, conditions=None, actions=None, **extra):
    return await coordinator.automation_rules.create({
        "name": f"{rule_type} kuralı",
        "type": rule_type,
        "conditions": conditions or {},
        "actions": actions or {},
        **extra,
    })


class TestReorderPoint:
    """reorder_point: düşük stoklu ürün için tek kalemli PO."""

    def test_creates_po_and_counts_trigger(self, coordinator, engine, event_bus):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=2, minimumStock=5, maximumStock=50))
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10)
            rule = await _rule(coordinator, "reorder_point", actions={"createPO": True})
            report = await engine.check_automation_rules()
            return product, supplier, rule, report, await coordinator.automation_rules.get(rule["id"])

        product, supplier, rule, report, stored_rule = asyncio.run(scenario())
        assert report.rules_evaluated == 1
        assert len(report.purchase_orders) == 1
        po = report.purchase_orders[0]
        assert po["supplierId"] == supplier["id"]
        assert po["items"][0]["productId"] == product["id"]
        assert po["items"][0]["quantity"] == 48
        assert po["total"] == 480
        assert po["autoGenerated"] is True
        assert po["createdBy"] == "automation"
        assert po["status"] == "draft"
        assert po["triggerReason"] == "Low stock alert: Test Product (2 remaining)"
        assert stored_rule["triggerCount"] == 1
        assert stored_rule["lastTriggered"] == NOW.isoformat()
        assert report.triggers[0].purchase_order_id == po["id"]
        assert len(event_bus.get_event_log(EventType.RULE_TRIGGERED)) == 1

    def test_repeated_runs_trigger_again(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=2))
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10)
            rule = await _rule(coordinator, "reorder_point", actions={"createPO": True})
            await engine.check_automation_rules()
            await engine.check_automation_rules()
            return (
                await coordinator.automation_rules.get(rule["id"]),
                await coordinator.purchase_orders.list(),
            )

        rule, purchase_orders = asyncio.run(scenario())
        assert rule["triggerCount"] == 2
        assert len(purchase_orders) == 2

    def test_each_po_increments_count(self, coordinator, engine):
        async def scenario():
            supplier = await _supplier(coordinator)
            for sku in ("A1", "B1", "C1"):
                product = await coordinator.products.create(sample_product(sku=sku, stock=1))
                await _price(coordinator, supplier["id"], product["id"], 3)
            rule = await _rule(coordinator, "reorder_point", actions={"createPO": True})
            report = await engine.check_automation_rules()
            return report, await coordinator.automation_rules.get(rule["id"])

        report, rule = asyncio.run(scenario())
        assert len(report.purchase_orders) == 3
        assert [t.trigger_count for t in report.triggers] == [1, 2, 3]
        assert rule["triggerCount"] == 3

    def test_cheapest_valid_price_wins(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=0))
            cheap_expired = await _supplier(coordinator, "Ucuz ama süresi dolmuş")
            fair = await _supplier(coordinator, "Makul")
            await _price(coordinator, cheap_expired["id"], product["id"], 1, validUntil="2024-05-01")
            await _price(coordinator, fair["id"], product["id"], 8, validUntil="2024-12-31")
            await _rule(coordinator, "reorder_point", actions={"createPO": True})
            return fair, await engine.check_automation_rules()

        fair, report = asyncio.run(scenario())
        assert [po["supplierId"] for po in report.purchase_orders] == [fair["id"]]

    def test_missing_supplier_skips_product(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=2))
            await _price(coordinator, "supp_ghost", product["id"], 10)
            await _rule(coordinator, "reorder_point", actions={"createPO": True})
            return await engine.check_automation_rules()

        report = asyncio.run(scenario())
        assert report.purchase_orders == []
        assert report.triggers == []

    def test_without_create_po_action_does_nothing(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=2))
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10)
            await _rule(coordinator, "reorder_point", actions={"sendAlert": True})
            return await engine.check_automation_rules()

        assert asyncio.run(scenario()).purchase_orders == []

    def test_inactive_rule_is_skipped(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=2))
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10)
            await _rule(coordinator, "reorder_point", actions={"createPO": True}, isActive=False)
            return await engine.check_automation_rules()

        report = asyncio.run(scenario())
        assert report.rules_evaluated == 0
        assert report.purchase_orders == []

    def test_empty_product_scope_matches_nothing(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=2))
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10)
            await _rule(coordinator, "reorder_point", {"productIds": []}, {"createPO": True})
            return await engine.check_automation_rules()

        assert asyncio.run(scenario()).purchase_orders == []

    def test_zero_quantity_product_is_skipped(self, coordinator, engine, caplog):
        async def scenario():
            first = await _supplier(coordinator, "Birinci")
            second = await _supplier(coordinator, "İkinci")
            a = await coordinator.products.create(sample_product(sku="A", stock=1))
            z = await coordinator.products.create(
                sample_product(sku="Z", stock=0, minimumStock=0, maximumStock=0)
            )
            await _price(coordinator, first["id"], a["id"], 10)
            await _price(coordinator, second["id"], z["id"], 3)
            await _rule(coordinator, "reorder_point", actions={"createPO": True})
            report = await engine.check_automation_rules()
            return a, report, await coordinator.purchase_orders.list()

        with caplog.at_level("WARNING"):
            a, report, stored = asyncio.run(scenario())
        assert report.errors == []
        assert [po["items"][0]["productId"] for po in report.purchase_orders] == [a["id"]]
        assert len(stored) == 1
        assert "Sipariş miktarı sıfır" in caplog.text


class TestLowStock:
    def test_alerts_with_severity(self, coordinator, engine, event_bus):
        async def scenario():
            await coordinator.products.create(sample_product(sku="LOW", stock=2, minimumStock=5))
            await coordinator.products.create(sample_product(sku="OUT", stock=0, minimumStock=5))
            await coordinator.products.create(sample_product(sku="OK", stock=20, minimumStock=5))
            rule = await _rule(coordinator, "low_stock", actions={"sendAlert": True, "notifyUsers": ["user_1"]})
            return rule, await engine.check_automation_rules()

        rule, report = asyncio.run(scenario())
        severities = {a.sku: a.severity for a in report.alerts}
        assert severities == {"LOW": AlertSeverity.MEDIUM, "OUT": AlertSeverity.CRITICAL}
        assert report.purchase_orders == []
        assert len(report.triggers) == 1
        events = event_bus.get_event_log(EventType.LOW_STOCK_ALERT)
        assert len(events) == 2
        assert events[0].payload["notifyUsers"] == ["user_1"]
        assert events[0].payload["ruleId"] == rule["id"]

    def test_stock_level_condition_overrides_minimum(self, coordinator, engine):
        async def scenario():
            await coordinator.products.create(sample_product(sku="OK", stock=20, minimumStock=5))
            await _rule(coordinator, "low_stock", {"stockLevel": 25}, {"sendAlert": True})
            return await engine.check_automation_rules()

        report = asyncio.run(scenario())
        assert [a.threshold for a in report.alerts] == [25]

    def test_without_send_alert_no_trigger(self, coordinator, engine, event_bus):
        async def scenario():
            await coordinator.products.create(sample_product(stock=1))
            rule = await _rule(coordinator, "low_stock")
            await engine.check_automation_rules()
            return await coordinator.automation_rules.get(rule["id"])

        rule = asyncio.run(scenario())
        assert rule["triggerCount"] == 0
        assert event_bus.get_event_log(EventType.LOW_STOCK_ALERT) == []

    def test_zero_stock_level_is_a_threshold(self, coordinator, engine):
        async def scenario():
            await coordinator.products.create(sample_product(sku="LOW", stock=2, minimumStock=5))
            await coordinator.products.create(sample_product(sku="OUT", stock=0, minimumStock=5))
            await _rule(coordinator, "low_stock", {"stockLevel": 0}, {"sendAlert": True})
            return await engine.check_automation_rules()

        report = asyncio.run(scenario())
        assert [(a.sku, a.threshold) for a in report.alerts] == [("OUT", 0)]
        assert report.alerts[0].severity == AlertSeverity.CRITICAL

    def test_product_ids_limit_alerts(self, coordinator, engine):
        async def scenario():
            first = await coordinator.products.create(sample_product(sku="P1", stock=1))
            await coordinator.products.create(sample_product(sku="P2", stock=1))
            await _rule(coordinator, "low_stock", {"productIds": [first["id"]]}, {"sendAlert": True})
            return await engine.check_automation_rules()

        report = asyncio.run(scenario())
        assert [a.sku for a in report.alerts] == ["P1"]
        assert report.triggers[0].reason == "Low stock alert: 1 products below threshold"


class TestSupplierPriceRule:
    def test_recent_prices_trigger(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product())
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10, createdAt="2024-05-25T00:00:00+00:00")
            await _price(coordinator, supplier["id"], product["id"], 11, createdAt="2024-01-01T00:00:00+00:00")
            await _rule(coordinator, "supplier_price", {"timeframe": 30})
            return await engine.check_automation_rules()

        report = asyncio.run(scenario())
        assert len(report.triggers) == 1
        assert report.triggers[0].reason == "1 supplier prices updated in the last 30 days"

    def test_no_recent_prices(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product())
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10, createdAt="2024-01-01T00:00:00+00:00")
            await _rule(coordinator, "supplier_price", {"timeframe": 7})
            return await engine.check_automation_rules()

        assert asyncio.run(scenario()).triggers == []

    def test_zero_timeframe_is_not_the_default(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product())
            supplier = await _supplier(coordinator)
            await _price(coordinator, supplier["id"], product["id"], 10, createdAt="2024-05-31T12:00:00+00:00")
            await _rule(coordinator, "supplier_price", {"timeframe": 0})
            zero = await engine.check_automation_rules()
            await _rule(coordinator, "supplier_price", {})
            return zero, await engine.check_automation_rules()

        zero, default = asyncio.run(scenario())
        assert zero.triggers == []
        assert [t.reason for t in default.triggers] == ["1 supplier prices updated in the last 30 days"]


class TestRuleIsolation:
    def test_broken_rule_does_not_stop_others(self, coordinator, engine, local_provider):
        async def scenario():
            await coordinator.products.create(sample_product(stock=1))
            good = await _rule(coordinator, "low_stock", actions={"sendAlert": True})
            forecast_rule = await _rule(coordinator, "demand_forecast")
            bad = {"id": "rule_bad", "name": "Bozuk", "type": "magic", "isActive": True}
            await local_provider.replace_collection(Collection.AUTOMATION_RULES, [bad, good, forecast_rule])
            return await engine.check_automation_rules()

        report = asyncio.run(scenario())
        assert report.rules_evaluated == 3
        assert len(report.errors) == 1
        assert report.errors[0]["ruleId"] == "rule_bad"
        assert report.errors[0]["errorType"] == "ValueError"
        assert len(report.alerts) == 1
        assert report.summary()["errors"] == report.errors


class TestBatchPurchaseOrders:
    def test_groups_by_best_supplier(self, coordinator, engine):
        async def scenario():
            first = await _supplier(coordinator, "Birinci")
            second = await _supplier(coordinator, "İkinci")
            a = await coordinator.products.create(sample_product(sku="A", stock=1))
            b = await coordinator.products.create(sample_product(sku="B", stock=2))
            c = await coordinator.products.create(sample_product(sku="C", stock=40))
            await coordinator.products.create(sample_product(sku="D", stock=0))
            await _price(coordinator, first["id"], a["id"], 10)
            await _price(coordinator, second["id"], a["id"], 12)
            await _price(coordinator, first["id"], b["id"], 5)
            await _price(coordinator, second["id"], c["id"], 1)
            return first, a, b, await engine.auto_generate_purchase_orders()

        first, a, b, created = asyncio.run(scenario())
        assert len(created) == 1
        po = created[0]
        assert po["supplierId"] == first["id"]
        assert {item["productId"] for item in po["items"]} == {a["id"], b["id"]}
        assert po["createdBy"] == "ai_automation"
        assert po["triggerReason"] == "Auto-generated PO for 2 low-stock products"

    def test_no_low_stock_no_orders(self, coordinator, engine):
        async def scenario():
            await coordinator.products.create(sample_product(stock=30))
            return await engine.auto_generate_purchase_orders()

        assert asyncio.run(scenario()) == []

    def test_zero_quantity_line_does_not_abort_batch(self, coordinator, engine, caplog):
        async def scenario():
            first = await _supplier(coordinator, "Birinci")
            second = await _supplier(coordinator, "İkinci")
            a = await coordinator.products.create(sample_product(sku="A", stock=1))
            z = await coordinator.products.create(
                sample_product(sku="Z", stock=0, minimumStock=0, maximumStock=0)
            )
            await _price(coordinator, first["id"], a["id"], 10)
            await _price(coordinator, second["id"], z["id"], 3)
            created = await engine.auto_generate_purchase_orders()
            return first, a, created, await coordinator.purchase_orders.list()

        with caplog.at_level("WARNING"):
            first, a, created, stored = asyncio.run(scenario())
        assert [po["supplierId"] for po in created] == [first["id"]]
        assert [item["productId"] for item in created[0]["items"]] == [a["id"]]
        assert [po["id"] for po in stored] == [created[0]["id"]]
        assert "Sipariş miktarı sıfır" in caplog.text


class TestDemandForecast:
    def test_default_when_no_history(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product())
            return product, await engine.generate_demand_forecast(product["id"])

        product, forecast = asyncio.run(scenario())
        assert forecast["productId"] == product["id"]
        assert forecast["predictedDemand"] == 12
        assert forecast["recommendedStock"] == 15
        assert forecast["confidence"] == 75
        assert forecast["period"] == "next_30_days"
        assert forecast["id"].startswith("fcst_")

    def test_average_of_order_lines(self, coordinator, engine):
        async def scenario():
            product = await coordinator.products.create(sample_product())
            for quantity in (4, 8):
                await coordinator.orders.create({
                    "customerId": "cust_1",
                    "items": [{"productId": product["id"], "quantity": quantity, "unitPrice": 150}],
                })
            return await engine.generate_demand_forecast(product["id"])

        forecast = asyncio.run(scenario())
        assert forecast["predictedDemand"] == 7
        assert forecast["recommendedStock"] == 9

    def test_unknown_product(self, engine):
        with pytest.raises(NotFoundError):
            asyncio.run(engine.generate_demand_forecast("prod_missing"))


class TestScheduler:
    def test_start_and_stop(self, coordinator, engine):
        async def scenario():
            await _rule(coordinator, "supplier_price")
            await engine.start(0.01)
            running = engine.is_running
            await asyncio.sleep(0.05)
            await engine.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert engine.is_running is False

    def test_invalid_interval(self, engine):
        with pytest.raises(ValueError):
            asyncio.run(engine.start(0))


class TestHelpers:
    @pytest.mark.parametrize(
        "quantity, threshold, expected",
        [
            (0, 10, AlertSeverity.CRITICAL),
            (2, 10, AlertSeverity.HIGH),
            (4, 10, AlertSeverity.MEDIUM),
            (8, 10, AlertSeverity.LOW),
            (3, 0, AlertSeverity.CRITICAL),
        ],
    )
    def test_calculate_severity(self, quantity, threshold, expected):
        assert calculate_severity(quantity, threshold) == expected

    def test_reorder_quantity(self):
        assert reorder_quantity({"stock": 2, "minimumStock": 5, "maximumStock": 50}) == 48
        assert reorder_quantity({"stock": 95, "minimumStock": 10, "maximumStock": 100}) == 20

    def test_best_price_ties_keep_first(self):
        prices = [
            {"id": "a", "productId": "p", "supplierId": "s1", "price": 5},
            {"id": "b", "productId": "p", "supplierId": "s2", "price": 5},
        ]
        assert best_supplier_price(prices, "p", NOW)["id"] == "a"
        assert best_supplier_price(prices, "other", NOW) is None

    def test_naive_forecast_rounds_half_up(self):
        orders = [{"items": [{"productId": "p", "quantity": 5}]}]
        forecast = naive_forecast("p", orders)
        assert forecast["predictedDemand"] == 6
        assert forecast["recommendedStock"] == 8
