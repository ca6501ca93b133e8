"""Satın alma yardımcıları: en iyi tedarikçi fiyatı, yeniden sipariş miktarı, PO taslağı."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from hybrid_inventory.models.entities import PurchaseOrderStatus

AUTOMATION_USER = "automation"


def parse_time(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else None


def is_price_valid(price: dict, now: datetime) -> bool:
    """validUntil geçmişte kalmış fiyatlar geçersizdir; tarihsiz fiyat hep geçerli."""
    valid_until = price.get("validUntil")
    if not valid_until:
        return True
    parsed = parse_time(valid_until)
    if parsed is None:
        # Saat dilimi olmayan tarih (YYYY-MM-DD): gün sonuna kadar geçerli say
        try:
            day = datetime.fromisoformat(str(valid_until)).date()
        except ValueError:
            return True
        return day >= now.date()
    return parsed >= now


def best_supplier_price(prices: Iterable[dict], product_id: str, now: datetime) -> Optional[dict]:
    """Ürün için geçerli en düşük fiyatlı SupplierPrice kaydını döndürür."""
    candidates = [
        p for p in prices
        if p.get("productId") == product_id and is_price_valid(p, now)
    ]
    if not candidates:
        return None
    # Eşit fiyatta ilk kayıt kazanır
    return min(candidates, key=lambda p: p["price"])


def reorder_quantity(product: dict) -> int:
    """max(maximumStock - stock, minimumStock * 2)"""
    stock = product.get("stock", 0)
    return max(product.get("maximumStock", 0) - stock, product.get("minimumStock", 0) * 2)


def is_low_stock(product: dict) -> bool:
    return product.get("stock", 0) <= product.get("minimumStock", 0)


def build_purchase_order(
    supplier_id: str,
    lines: list[tuple[dict, int, float]],
    trigger_reason: str,
    now: datetime,
    created_by: str = AUTOMATION_USER,
) -> dict:
    """(ürün, miktar, birim fiyat) satırlarından otomatik PO verisi hazırlar."""
    items = [
        {
            "productId": product["id"],
            "quantity": quantity,
            "unitPrice": unit_price,
            "total": round(quantity * unit_price, 2),
        }
        for product, quantity, unit_price in lines
    ]
    return {
        "supplierId": supplier_id,
        "items": items,
        "taxRate": 0,
        "status": PurchaseOrderStatus.DRAFT.value,
        "orderDate": now.isoformat(),
        "createdBy": created_by,
        "autoGenerated": True,
        "triggerReason": trigger_reason,
    }
