"""Mantıksal (camelCase) alan adları ile DynamoDB (snake_case) öznitelikleri arasındaki eşleme.

Eşleme açık bir tablodur; tahmin yapılmaz. Tabloda olmayan bir alan her iki
yönde de SchemaMismatchError üretir.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from hybrid_inventory.models.entities import Collection
from hybrid_inventory.storage.errors import SchemaMismatchError

_AUDIT = {"id": "id", "createdAt": "created_at", "updatedAt": "updated_at"}

_CONTACT = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "contactPerson": "contact_person",
    "paymentTerms": "payment_terms",
}

_DOCUMENT_TOTALS = {
    "items": "items",
    "subtotal": "subtotal",
    "taxRate": "tax_rate",
    "taxAmount": "tax_amount",
    "total": "total",
    "status": "status",
    "notes": "notes",
}

FIELD_MAPS: dict[Collection, dict[str, str]] = {
    Collection.PRODUCTS: {
        **_AUDIT,
        "name": "name",
        "sku": "sku",
        "description": "description",
        "category": "category",
        "unit": "unit",
        "costPrice": "cost_price",
        "sellingPrice": "selling_price",
        "markup": "markup",
        "stock": "stock",
        "reservedStock": "reserved_stock",
        "availableStock": "available_stock",
        "minimumStock": "minimum_stock",
        "maximumStock": "maximum_stock",
        "location": "location",
        "barcode": "barcode",
    },
    Collection.CUSTOMERS: {
        **_AUDIT,
        **_CONTACT,
        "company": "company",
        "taxNumber": "tax_number",
        "creditLimit": "credit_limit",
        "discount": "discount",
    },
    Collection.SUPPLIERS: {**_AUDIT, **_CONTACT},
    Collection.USERS: {
        **_AUDIT,
        "email": "email",
        "password": "password_hash",
        "role": "role",
        "username": "username",
        "firstName": "first_name",
        "lastName": "last_name",
        "permissions": "permissions",
        "lastLogin": "last_login",
    },
    Collection.ORDERS: {
        **_AUDIT,
        **_DOCUMENT_TOTALS,
        "orderNumber": "order_number",
        "quotationId": "quotation_id",
        "customerId": "customer_id",
        "priority": "priority",
        "expectedDelivery": "expected_delivery",
    },
    Collection.QUOTATIONS: {
        **_AUDIT,
        **_DOCUMENT_TOTALS,
        "quoteNumber": "quote_number",
        "customerId": "customer_id",
        "customerName": "customer_name",
        "projectName": "project_name",
        "validUntil": "valid_until",
    },
    Collection.SUPPLIER_PRICES: {
        **_AUDIT,
        "supplierId": "supplier_id",
        "productId": "product_id",
        "price": "price",
        "minimumQuantity": "minimum_quantity",
        "leadTime": "lead_time_days",
        "currency": "currency",
        "validUntil": "valid_until",
    },
    Collection.PURCHASE_ORDERS: {
        **_AUDIT,
        **_DOCUMENT_TOTALS,
        "poNumber": "po_number",
        "supplierId": "supplier_id",
        "orderDate": "order_date",
        "expectedDelivery": "expected_delivery",
        "createdBy": "created_by",
        "autoGenerated": "auto_generated",
        "triggerReason": "trigger_reason",
    },
    Collection.AUTOMATION_RULES: {
        **_AUDIT,
        "name": "name",
        "type": "rule_type",
        "isActive": "is_active",
        "conditions": "conditions",
        "actions": "actions",
        "triggerCount": "trigger_count",
        "lastTriggered": "last_triggered",
    },
    Collection.DEMAND_FORECASTS: {
        **_AUDIT,
        "productId": "product_id",
        "period": "period",
        "predictedDemand": "predicted_demand",
        "confidence": "confidence",
        "factors": "factors",
        "recommendedStock": "recommended_stock",
    },
    Collection.STOCK_MOVEMENTS: {
        **_AUDIT,
        "productId": "product_id",
        "type": "movement_type",
        "quantity": "quantity",
        "reason": "reason",
        "reference": "reference",
        "createdBy": "created_by",
    },
}

# İç içe nesneler: mantıksal üst alan -> alt alan eşlemesi
NESTED_MAPS: dict[str, dict[str, str]] = {
    "items": {
        "productId": "product_id",
        "quantity": "quantity",
        "unitPrice": "unit_price",
        "unit": "unit",
        "discount": "discount",
        "total": "total",
        "received": "received_quantity",
    },
    "conditions": {
        "productIds": "product_ids",
        "stockLevel": "stock_level",
        "priceThreshold": "price_threshold",
        "timeframe": "timeframe_days",
    },
    "actions": {
        "createPO": "create_purchase_order",
        "sendAlert": "send_alert",
        "updatePricing": "update_pricing",
        "notifyUsers": "notify_users",
    },
}

WIRE_TABLE_NAMES: dict[Collection, str] = {
    Collection.PRODUCTS: "products",
    Collection.CUSTOMERS: "customers",
    Collection.ORDERS: "orders",
    Collection.SUPPLIERS: "suppliers",
    Collection.QUOTATIONS: "quotations",
    Collection.USERS: "users",
    Collection.SUPPLIER_PRICES: "supplier_prices",
    Collection.PURCHASE_ORDERS: "purchase_orders",
    Collection.AUTOMATION_RULES: "automation_rules",
    Collection.DEMAND_FORECASTS: "demand_forecasts",
    Collection.STOCK_MOVEMENTS: "stock_movements",
}

_REVERSE_MAPS = {c: {w: l for l, w in m.items()} for c, m in FIELD_MAPS.items()}
_REVERSE_NESTED = {name: {w: l for l, w in m.items()} for name, m in NESTED_MAPS.items()}


def _to_dynamo_value(value: Any) -> Any:
    """float -> Decimal (boto3 float kabul etmez)."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, list):
        return [_to_dynamo_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_dynamo_value(v) for k, v in value.items()}
    return value


def _from_dynamo_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_from_dynamo_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _from_dynamo_value(v) for k, v in value.items()}
    return value


def _rename(mapping: dict[str, str], data: dict, where: str) -> dict:
    renamed = {}
    for key, value in data.items():
        if key not in mapping:
            raise SchemaMismatchError(f"Eşlenmemiş alan: {where}.{key}", provider="cloud")
        renamed[mapping[key]] = value
    return renamed


def _map_nested(name: str, value: Any, maps: dict[str, dict[str, str]], where: str) -> Any:
    if isinstance(value, list):
        return [_rename(maps[name], v, where) if isinstance(v, dict) else v for v in value]
    if isinstance(value, dict):
        return _rename(maps[name], value, where)
    return value


def to_wire(collection: Collection, record: dict) -> dict:
    """Mantıksal kaydı DynamoDB öğesine çevirir."""
    item = {}
    for key, value in _rename(FIELD_MAPS[collection], record, collection.value).items():
        logical = _REVERSE_MAPS[collection][key]
        if logical in NESTED_MAPS:
            value = _map_nested(logical, value, NESTED_MAPS, f"{collection.value}.{logical}")
        item[key] = _to_dynamo_value(value)
    return item


def from_wire(collection: Collection, item: dict) -> dict:
    """DynamoDB öğesini mantıksal kayda çevirir."""
    record = {}
    for key, value in _rename(_REVERSE_MAPS[collection], item, WIRE_TABLE_NAMES[collection]).items():
        if key in NESTED_MAPS:
            value = _map_nested(key, value, _REVERSE_NESTED, f"{WIRE_TABLE_NAMES[collection]}.{key}")
        record[key] = _from_dynamo_value(value)
    return record


def wire_field(collection: Collection, logical_name: str) -> str:
    try:
        return FIELD_MAPS[collection][logical_name]
    except KeyError:
        raise SchemaMismatchError(f"Eşlenmemiş alan: {collection.value}.{logical_name}", provider="cloud") from None
