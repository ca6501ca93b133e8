"""Koleksiyon şemaları: alan listeleri, zorunlu alanlar, benzersizlik ve varsayılanlar.

Her sağlayıcı (yerel ve uzak) aynı şemaları kullanır; böylece CRUD
sözleşmesi backend'den bağımsız olarak aynı kalır.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from hybrid_inventory.models.entities import Collection

ITEM_FIELDS = ("productId", "quantity", "unitPrice", "unit", "discount", "total", "received")
CONDITION_FIELDS = ("productIds", "stockLevel", "priceThreshold", "timeframe")
ACTION_FIELDS = ("createPO", "sendAlert", "updatePricing", "notifyUsers")

_AUDIT_FIELDS = ("id", "createdAt", "updatedAt")


@dataclass(frozen=True)
class EntitySchema:
    collection: Collection
    id_prefix: str
    fields: tuple[str, ...]
    required: tuple[str, ...] = ()
    unique: tuple[str, ...] = ()
    defaults: dict = field(default_factory=dict)
    number_field: Optional[str] = None
    number_prefix: Optional[str] = None
    # Nested alanlar: {alan: izinli alt alanlar}
    nested: dict = field(default_factory=dict)

    @property
    def has_line_items(self) -> bool:
        return "items" in self.nested


SCHEMAS: dict[Collection, EntitySchema] = {
    Collection.PRODUCTS: EntitySchema(
        collection=Collection.PRODUCTS,
        id_prefix="prod",
        fields=_AUDIT_FIELDS + (
            "name", "sku", "description", "category", "unit", "costPrice",
            "sellingPrice", "markup", "stock", "reservedStock", "availableStock",
            "minimumStock", "maximumStock", "location", "barcode",
        ),
        required=("name", "sku", "costPrice", "sellingPrice"),
        unique=("sku",),
        defaults={
            "category": "General",
            "unit": "EA",
            "stock": 0,
            "reservedStock": 0,
            "minimumStock": 5,
            "maximumStock": 100,
            "location": "TBD",
        },
    ),
    Collection.CUSTOMERS: EntitySchema(
        collection=Collection.CUSTOMERS,
        id_prefix="cust",
        fields=_AUDIT_FIELDS + (
            "name", "email", "phone", "address", "company", "contactPerson",
            "taxNumber", "paymentTerms", "creditLimit", "discount",
        ),
        required=("name",),
        defaults={"email": "", "phone": "", "address": ""},
    ),
    Collection.SUPPLIERS: EntitySchema(
        collection=Collection.SUPPLIERS,
        id_prefix="supp",
        fields=_AUDIT_FIELDS + (
            "name", "email", "phone", "address", "contactPerson", "paymentTerms",
        ),
        required=("name",),
        defaults={"email": "", "phone": "", "address": ""},
    ),
    Collection.USERS: EntitySchema(
        collection=Collection.USERS,
        id_prefix="user",
        fields=_AUDIT_FIELDS + (
            "email", "password", "role", "username", "firstName", "lastName",
            "permissions", "lastLogin",
        ),
        required=("email", "password", "role"),
        unique=("email",),
        defaults={"firstName": "", "lastName": "", "permissions": []},
    ),
    Collection.ORDERS: EntitySchema(
        collection=Collection.ORDERS,
        id_prefix="order",
        fields=_AUDIT_FIELDS + (
            "orderNumber", "quotationId", "customerId", "items", "subtotal",
            "taxRate", "taxAmount", "total", "status", "priority",
            "expectedDelivery", "notes",
        ),
        required=("customerId", "items"),
        defaults={"status": "pending", "priority": "medium", "taxRate": 0},
        number_field="orderNumber",
        number_prefix="ORD",
        nested={"items": ITEM_FIELDS},
    ),
    Collection.QUOTATIONS: EntitySchema(
        collection=Collection.QUOTATIONS,
        id_prefix="quote",
        fields=_AUDIT_FIELDS + (
            "quoteNumber", "customerId", "customerName", "projectName", "items",
            "subtotal", "taxRate", "taxAmount", "total", "status", "validUntil",
            "notes",
        ),
        required=("customerId", "items"),
        defaults={"status": "draft", "taxRate": 0},
        number_field="quoteNumber",
        number_prefix="QUO",
        nested={"items": ITEM_FIELDS},
    ),
    Collection.SUPPLIER_PRICES: EntitySchema(
        collection=Collection.SUPPLIER_PRICES,
        id_prefix="sprice",
        fields=_AUDIT_FIELDS + (
            "supplierId", "productId", "price", "minimumQuantity", "leadTime",
            "currency", "validUntil",
        ),
        required=("supplierId", "productId", "price"),
        defaults={"minimumQuantity": 1, "leadTime": 0, "currency": "ZAR"},
    ),
    Collection.PURCHASE_ORDERS: EntitySchema(
        collection=Collection.PURCHASE_ORDERS,
        id_prefix="po",
        fields=_AUDIT_FIELDS + (
            "poNumber", "supplierId", "items", "subtotal", "taxRate", "taxAmount",
            "total", "status", "orderDate", "expectedDelivery", "notes",
            "createdBy", "autoGenerated", "triggerReason",
        ),
        required=("supplierId", "items"),
        defaults={"status": "draft", "taxRate": 0, "createdBy": "user", "autoGenerated": False},
        number_field="poNumber",
        number_prefix="PO",
        nested={"items": ITEM_FIELDS},
    ),
    Collection.AUTOMATION_RULES: EntitySchema(
        collection=Collection.AUTOMATION_RULES,
        id_prefix="rule",
        fields=_AUDIT_FIELDS + (
            "name", "type", "isActive", "conditions", "actions", "triggerCount",
            "lastTriggered",
        ),
        required=("name", "type"),
        defaults={"isActive": True, "conditions": {}, "actions": {}, "triggerCount": 0},
        nested={"conditions": CONDITION_FIELDS, "actions": ACTION_FIELDS},
    ),
    Collection.DEMAND_FORECASTS: EntitySchema(
        collection=Collection.DEMAND_FORECASTS,
        id_prefix="fcst",
        fields=_AUDIT_FIELDS + (
            "productId", "period", "predictedDemand", "confidence", "factors",
            "recommendedStock",
        ),
        required=("productId",),
        defaults={"period": "next_30_days", "factors": []},
    ),
    Collection.STOCK_MOVEMENTS: EntitySchema(
        collection=Collection.STOCK_MOVEMENTS,
        id_prefix="smov",
        fields=_AUDIT_FIELDS + (
            "productId", "type", "quantity", "reason", "reference", "createdBy",
        ),
        required=("productId", "type", "quantity"),
        defaults={"reason": "", "createdBy": "system"},
    ),
}


def get_schema(collection: Collection | str) -> EntitySchema:
    return SCHEMAS[Collection(collection)]
