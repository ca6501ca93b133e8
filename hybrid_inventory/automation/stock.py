"""Stok işlemleri - rezervasyon, düzeltme ve PO teslim alma.

Her işlem bir stok hareketi kaydı bırakır ve 0 <= reservedStock <= stock
koşulunu korur.
"""

from __future__ import annotations

import logging
from typing import Optional

from hybrid_inventory.models.entities import Collection, PurchaseOrderStatus, StockMovementType
from hybrid_inventory.storage.errors import InsufficientStockError, ValidationError

logger = logging.getLogger(__name__)


def _require_positive(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError(f"Miktar pozitif tam sayı olmalı: {quantity!r}")


class StockService:
    """Koordinatör üzerinden ürün stoklarını değiştiren servis."""

    def __init__(self, coordinator, created_by: str = "system"):
        self.coordinator = coordinator
        self.created_by = created_by

    async def _record_movement(
        self,
        product_id: str,
        movement_type: StockMovementType,
        quantity: int,
        reason: str = "",
        reference: Optional[str] = None,
    ) -> dict:
        movement = {
            "productId": product_id,
            "type": movement_type.value,
            "quantity": quantity,
            "reason": reason,
            "createdBy": self.created_by,
        }
        if reference:
            movement["reference"] = reference
        return await self.coordinator.create(Collection.STOCK_MOVEMENTS, movement)

    async def reserve_stock(self, product_id: str, quantity: int, reference: Optional[str] = None) -> dict:
        """Kullanılabilir stoktan rezervasyon yapar."""
        _require_positive(quantity)
        product = await self.coordinator.get(Collection.PRODUCTS, product_id)
        available = product.get("stock", 0) - product.get("reservedStock", 0)
        if quantity > available:
            raise InsufficientStockError(
                f"Yetersiz stok: {product.get('sku')} kullanılabilir={available}, istenen={quantity}"
            )
        updated = await self.coordinator.update(
            Collection.PRODUCTS, product_id, {"reservedStock": product.get("reservedStock", 0) + quantity}
        )
        await self._record_movement(product_id, StockMovementType.RESERVED, quantity, "reservation", reference)
        logger.info("Rezervasyon: %s +%d", product.get("sku"), quantity)
        return updated

    async def release_stock(self, product_id: str, quantity: int, reference: Optional[str] = None) -> dict:
        """Rezervasyonu serbest bırakır."""
        _require_positive(quantity)
        product = await self.coordinator.get(Collection.PRODUCTS, product_id)
        reserved = product.get("reservedStock", 0)
        if quantity > reserved:
            raise InsufficientStockError(
                f"Serbest bırakılacak rezervasyon yok: {product.get('sku')} rezerve={reserved}, istenen={quantity}"
            )
        updated = await self.coordinator.update(Collection.PRODUCTS, product_id, {"reservedStock": reserved - quantity})
        await self._record_movement(product_id, StockMovementType.UNRESERVED, quantity, "release", reference)
        return updated

    async def adjust_stock(self, product_id: str, delta: int, reason: str = "adjustment") -> dict:
        """Stoğu delta kadar değiştirir (sayım düzeltmesi, fire vb.)."""
        if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
            raise ValidationError(f"Düzeltme miktarı sıfırdan farklı tam sayı olmalı: {delta!r}")
        product = await self.coordinator.get(Collection.PRODUCTS, product_id)
        new_stock = product.get("stock", 0) + delta
        if new_stock < product.get("reservedStock", 0):
            raise InsufficientStockError(
                f"Düzeltme sonrası stok ({new_stock}) rezerve miktarın "
                f"({product.get('reservedStock', 0)}) altına düşer"
            )
        updated = await self.coordinator.update(Collection.PRODUCTS, product_id, {"stock": new_stock})
        await self._record_movement(product_id, StockMovementType.ADJUSTMENT, delta, reason)
        logger.info("Stok düzeltme: %s %+d -> %d", product.get("sku"), delta, new_stock)
        return updated

    async def receive_purchase_order(self, po_id: str) -> dict:
        """PO kalemlerini stoğa ekler ve PO'yu teslim alındı olarak işaretler."""
        po = await self.coordinator.get(Collection.PURCHASE_ORDERS, po_id)
        if po.get("status") in (PurchaseOrderStatus.RECEIVED.value, PurchaseOrderStatus.CANCELLED.value):
            raise ValidationError(f"PO {po.get('poNumber')} durumu '{po.get('status')}', teslim alınamaz")

        items = []
        for item in po.get("items") or []:
            outstanding = item["quantity"] - (item.get("received") or 0)
            if outstanding > 0:
                product = await self.coordinator.get(Collection.PRODUCTS, item["productId"])
                await self.coordinator.update(
                    Collection.PRODUCTS, item["productId"], {"stock": product.get("stock", 0) + outstanding}
                )
                await self._record_movement(
                    item["productId"], StockMovementType.IN, outstanding, "purchase order receipt", po.get("poNumber")
                )
            items.append({**item, "received": item["quantity"]})

        updated = await self.coordinator.update(
            Collection.PURCHASE_ORDERS, po_id, {"items": items, "status": PurchaseOrderStatus.RECEIVED.value}
        )
        logger.info("PO teslim alındı: %s (%d kalem)", po.get("poNumber"), len(items))
        return updated
