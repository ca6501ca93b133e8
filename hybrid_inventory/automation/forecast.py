"""Basit talep tahmini.

Gerçek bir istatistik modeli değildir: geçmiş sipariş satırlarının ortalaması
sabit çarpanlarla ölçeklenir.
"""

from __future__ import annotations

import math
from typing import Iterable

DEFAULT_AVERAGE_DEMAND = 10
GROWTH_FACTOR = 1.2
SAFETY_FACTOR = 1.5
FORECAST_CONFIDENCE = 75
FORECAST_PERIOD = "next_30_days"
FORECAST_FACTORS = ["Historical sales", "Seasonal trends", "Market conditions"]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def historical_quantities(orders: Iterable[dict], product_id: str) -> list[int]:
    """Tüm siparişlerdeki ürün satırlarının miktarları."""
    return [
        item.get("quantity", 0)
        for order in orders
        for item in order.get("items") or []
        if item.get("productId") == product_id
    ]


def naive_forecast(product_id: str, orders: Iterable[dict]) -> dict:
    """Ortalama talep x 1.2 tahmin, x 1.5 önerilen stok."""
    quantities = historical_quantities(orders, product_id)
    average = sum(quantities) / len(quantities) if quantities else DEFAULT_AVERAGE_DEMAND
    return {
        "productId": product_id,
        "period": FORECAST_PERIOD,
        "predictedDemand": round_half_up(average * GROWTH_FACTOR),
        "confidence": FORECAST_CONFIDENCE,
        "factors": list(FORECAST_FACTORS),
        "recommendedStock": round_half_up(average * SAFETY_FACTOR),
    }
