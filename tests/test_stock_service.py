"""Stok servisi unit testleri - rezervasyon, düzeltme, PO teslim alma."""

import asyncio

import pytest

from conftest import sample_product
from hybrid_inventory.automation import StockService
from hybrid_inventory.storage.errors import InsufficientStockError, NotFoundError, ValidationError


@pytest.fixture
def coordinator(make_coordinator):
    return make_coordinator()


@pytest.fixture
def service(coordinator):
    return StockService(coordinator, created_by="user_depo")


class TestReservation:
    """Gereksinim: 0 <= reservedStock <= stock"""

    def test_reserve_and_release(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=10))
            reserved = await service.reserve_stock(product["id"], 4, reference="ORD-1")
            released = await service.release_stock(product["id"], 3)
            return reserved, released, await coordinator.stock_movements.list()

        reserved, released, movements = asyncio.run(scenario())
        assert reserved["reservedStock"] == 4
        assert reserved["availableStock"] == 6
        assert released["reservedStock"] == 1
        assert [m["type"] for m in movements] == ["reserved", "unreserved"]
        assert movements[0]["reference"] == "ORD-1"
        assert movements[0]["createdBy"] == "user_depo"

    def test_cannot_reserve_more_than_available(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=5, reservedStock=3))
            with pytest.raises(InsufficientStockError):
                await service.reserve_stock(product["id"], 3)
            return await coordinator.products.get(product["id"])

        product = asyncio.run(scenario())
        assert product["reservedStock"] == 3

    def test_cannot_release_more_than_reserved(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=5, reservedStock=1))
            await service.release_stock(product["id"], 2)

        with pytest.raises(InsufficientStockError):
            asyncio.run(scenario())

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_quantity_must_be_positive_int(self, service, quantity):
        with pytest.raises(ValidationError):
            asyncio.run(service.reserve_stock("prod_any", quantity))

    def test_unknown_product(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.reserve_stock("prod_missing", 1))


class TestAdjustment:
    def test_adjust_up_and_down(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=10))
            await service.adjust_stock(product["id"], 5, reason="sayım")
            adjusted = await service.adjust_stock(product["id"], -12, reason="fire")
            return adjusted, await coordinator.stock_movements.list()

        adjusted, movements = asyncio.run(scenario())
        assert adjusted["stock"] == 3
        assert [m["quantity"] for m in movements] == [5, -12]
        assert [m["reason"] for m in movements] == ["sayım", "fire"]

    def test_cannot_drop_below_reserved(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=10, reservedStock=8))
            await service.adjust_stock(product["id"], -3)

        with pytest.raises(InsufficientStockError):
            asyncio.run(scenario())

    def test_zero_delta_rejected(self, service):
        with pytest.raises(ValidationError):
            asyncio.run(service.adjust_stock("prod_any", 0))


class TestReceivePurchaseOrder:
    def test_receive_adds_stock_and_marks_received(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=2))
            po = await coordinator.purchase_orders.create({
                "supplierId": "supp_1",
                "items": [{"productId": product["id"], "quantity": 48, "unitPrice": 10}],
            })
            received = await service.receive_purchase_order(po["id"])
            return (
                po,
                received,
                await coordinator.products.get(product["id"]),
                await coordinator.stock_movements.list(),
            )

        po, received, product, movements = asyncio.run(scenario())
        assert received["status"] == "received"
        assert received["items"][0]["received"] == 48
        assert product["stock"] == 50
        assert movements[0]["type"] == "in"
        assert movements[0]["reference"] == po["poNumber"]

    def test_partial_receipt_only_adds_outstanding(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product(stock=0))
            po = await coordinator.purchase_orders.create({
                "supplierId": "supp_1",
                "status": "partial",
                "items": [{"productId": product["id"], "quantity": 10, "unitPrice": 1, "received": 4}],
            })
            await service.receive_purchase_order(po["id"])
            return await coordinator.products.get(product["id"])

        assert asyncio.run(scenario())["stock"] == 6

    def test_cannot_receive_twice(self, coordinator, service):
        async def scenario():
            product = await coordinator.products.create(sample_product())
            po = await coordinator.purchase_orders.create({
                "supplierId": "supp_1",
                "items": [{"productId": product["id"], "quantity": 1, "unitPrice": 10}],
            })
            await service.receive_purchase_order(po["id"])
            await service.receive_purchase_order(po["id"])

        with pytest.raises(ValidationError, match="teslim alınamaz"):
            asyncio.run(scenario())
