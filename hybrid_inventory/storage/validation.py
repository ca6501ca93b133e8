"""Kayıt doğrulama ve hazırlama - veri bütünlüğü garantileri.

- Zorunlu alan ve bilinmeyen alan kontrolü
- Sayısal kısıtlar (negatif fiyat/stok yasağı, reservedStock <= stock)
- Benzersizlik (SKU, e-posta)
- Türetilmiş alanlar (markup, availableStock, belge toplamları)
- id/createdAt değişmezliği, updatedAt kesin artışı
"""

from __future__ import annotations

import copy
import logging
import os
import re
import secrets
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

import bcrypt

from hybrid_inventory.models.entities import (
    Collection,
    OrderStatus,
    PurchaseOrderStatus,
    QuoteStatus,
    RuleType,
    StockMovementType,
    UserRole,
    utc_now,
)
from hybrid_inventory.models.schema import EntitySchema
from hybrid_inventory.storage.errors import DuplicateKeyError, ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
logger = logging.getLogger(__name__)

# bcrypt maliyet parametresi; testler 4 ile hızlı çalışır
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
BCRYPT_MAX_BYTES = 72
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

if BCRYPT_ROUNDS < 10:
    logger.warning("BCRYPT_ROUNDS=%d önerilen en az 10 değerinin altında", BCRYPT_ROUNDS)

_STATUS_ENUMS = {
    Collection.ORDERS: OrderStatus,
    Collection.QUOTATIONS: QuoteStatus,
    Collection.PURCHASE_ORDERS: PurchaseOrderStatus,
}


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    def add(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def raise_if_invalid(self, collection: Collection) -> None:
        if not self.is_valid:
            raise ValidationError(
                f"Geçersiz {collection.value} verisi: {'; '.join(self.errors)}",
                self.errors,
            )


# --- Zaman damgaları ve kimlikler ---

def next_timestamp(previous: Optional[str] = None) -> str:
    """Şimdiki zamanı döndürür; önceki damgadan kesinlikle büyük olmasını garanti eder."""
    now = utc_now()
    if previous:
        try:
            prev = datetime.fromisoformat(previous)
        except (TypeError, ValueError):
            prev = None
        if prev is not None and prev.tzinfo is not None and now <= prev:
            now = prev + timedelta(microseconds=1)
    return now.isoformat()


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def generate_number(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(2).upper()}"


# --- Parola ---

def hash_password(password: str) -> str:
    """bcrypt özeti (algoritma, maliyet ve tuz özetin içinde)."""
    if not password:
        raise ValueError("Parola boş olamaz")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def is_password_hash(value: str) -> bool:
    return isinstance(value, str) and value.startswith(_BCRYPT_PREFIXES)


def verify_password(password: str, stored: str) -> bool:
    if not password or not is_password_hash(stored):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
    except ValueError as e:
        logger.error("Parola doğrulama hatası: %s", e)
        return False


# --- Yardımcılar ---

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_non_negative(result: ValidationResult, record: dict, names: Iterable[str], integer: bool = False) -> None:
    for name in names:
        if name not in record or record[name] is None:
            continue
        value = record[name]
        ok = _is_int(value) if integer else _is_number(value)
        if not ok:
            result.add(f"'{name}' {'tam sayı' if integer else 'sayı'} olmalı: {value!r}")
        elif value < 0:
            result.add(f"'{name}' negatif olamaz: {value}")


def check_unknown_fields(schema: EntitySchema, data: dict, result: ValidationResult) -> None:
    for name in data:
        if name not in schema.fields:
            result.add(f"Bilinmeyen alan: '{name}'")
    for name, allowed in schema.nested.items():
        value = data.get(name)
        if value is None:
            continue
        nested_items = value if isinstance(value, list) else [value]
        for entry in nested_items:
            if not isinstance(entry, dict):
                result.add(f"'{name}' nesne içermeli")
                continue
            for key in entry:
                if key not in allowed:
                    result.add(f"Bilinmeyen alan: '{name}.{key}'")


# --- Koleksiyona özel kısıtlar ---

def _check_product(record: dict, result: ValidationResult) -> None:
    _check_non_negative(result, record, ("costPrice", "sellingPrice"))
    _check_non_negative(result, record, ("stock", "reservedStock", "minimumStock", "maximumStock"), integer=True)
    stock = record.get("stock", 0)
    reserved = record.get("reservedStock", 0)
    if _is_int(stock) and _is_int(reserved) and reserved > stock:
        result.add(f"reservedStock ({reserved}) stock ({stock}) değerini aşamaz")


def _check_line_items(record: dict, result: ValidationResult) -> None:
    items = record.get("items")
    if not isinstance(items, list):
        result.add("'items' liste olmalı")
        return
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        if _is_blank(item.get("productId")):
            result.add(f"items[{index}].productId zorunlu")
        quantity = item.get("quantity")
        if not _is_int(quantity) or quantity <= 0:
            result.add(f"items[{index}].quantity pozitif tam sayı olmalı: {quantity!r}")
        unit_price = item.get("unitPrice")
        if not _is_number(unit_price) or unit_price < 0:
            result.add(f"items[{index}].unitPrice negatif olmayan sayı olmalı: {unit_price!r}")
        discount = item.get("discount")
        if discount is not None and (not _is_number(discount) or not 0 <= discount <= 100):
            result.add(f"items[{index}].discount 0-100 arasında olmalı: {discount!r}")
    _check_non_negative(result, record, ("taxRate",))


def _check_status(schema: EntitySchema, record: dict, result: ValidationResult) -> None:
    enum_cls = _STATUS_ENUMS.get(schema.collection)
    if enum_cls is None or "status" not in record:
        return
    allowed = {member.value for member in enum_cls}
    if record["status"] not in allowed:
        result.add(f"Geçersiz durum '{record['status']}', izinli: {sorted(allowed)}")


def _check_supplier_price(record: dict, result: ValidationResult) -> None:
    _check_non_negative(result, record, ("price",))
    _check_non_negative(result, record, ("leadTime",), integer=True)
    minimum = record.get("minimumQuantity")
    if minimum is not None and (not _is_int(minimum) or minimum < 1):
        result.add(f"minimumQuantity en az 1 olmalı: {minimum!r}")


def _check_user(record: dict, result: ValidationResult) -> None:
    email = record.get("email")
    if isinstance(email, str) and email and not EMAIL_PATTERN.match(email.strip()):
        result.add(f"Geçersiz e-posta: {email}")
    if record.get("role") not in {role.value for role in UserRole}:
        result.add(f"Geçersiz rol: {record.get('role')!r}")
    password = record.get("password")
    if isinstance(password, str) and len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        result.add(f"Parola en fazla {BCRYPT_MAX_BYTES} bayt olabilir")


def _check_automation_rule(record: dict, result: ValidationResult) -> None:
    if record.get("type") not in {rule_type.value for rule_type in RuleType}:
        result.add(f"Geçersiz kural tipi: {record.get('type')!r}")
    if not isinstance(record.get("isActive"), bool):
        result.add("'isActive' bool olmalı")
    _check_non_negative(result, record, ("triggerCount",), integer=True)
    conditions = record.get("conditions") or {}
    actions = record.get("actions") or {}
    if not isinstance(conditions, dict) or not isinstance(actions, dict):
        result.add("'conditions' ve 'actions' nesne olmalı")
        return
    _check_non_negative(result, conditions, ("stockLevel", "priceThreshold", "timeframe"))
    product_ids = conditions.get("productIds")
    if product_ids is not None and not isinstance(product_ids, list):
        result.add("'conditions.productIds' liste olmalı")
    for flag in ("createPO", "sendAlert", "updatePricing"):
        if flag in actions and not isinstance(actions[flag], bool):
            result.add(f"'actions.{flag}' bool olmalı")
    notify = actions.get("notifyUsers")
    if notify is not None and not isinstance(notify, list):
        result.add("'actions.notifyUsers' liste olmalı")


def _check_stock_movement(record: dict, result: ValidationResult) -> None:
    if record.get("type") not in {kind.value for kind in StockMovementType}:
        result.add(f"Geçersiz hareket tipi: {record.get('type')!r}")
    if not _is_int(record.get("quantity")):
        result.add(f"'quantity' tam sayı olmalı: {record.get('quantity')!r}")


def _check_nothing(record: dict, result: ValidationResult) -> None:
    return None


_COLLECTION_CHECKS = {
    Collection.PRODUCTS: _check_product,
    Collection.CUSTOMERS: _check_nothing,
    Collection.SUPPLIERS: _check_nothing,
    Collection.USERS: _check_user,
    Collection.ORDERS: _check_line_items,
    Collection.QUOTATIONS: _check_line_items,
    Collection.PURCHASE_ORDERS: _check_line_items,
    Collection.SUPPLIER_PRICES: _check_supplier_price,
    Collection.AUTOMATION_RULES: _check_automation_rule,
    Collection.DEMAND_FORECASTS: _check_nothing,
    Collection.STOCK_MOVEMENTS: _check_stock_movement,
}
assert set(_COLLECTION_CHECKS) == set(Collection), "Her koleksiyon için kontrol tanımlı olmalı"


def validate_record(schema: EntitySchema, record: dict) -> ValidationResult:
    """Tam bir kaydı şemaya göre doğrular."""
    result = ValidationResult()
    check_unknown_fields(schema, record, result)
    for name in schema.required:
        if _is_blank(record.get(name)):
            result.add(f"Zorunlu alan eksik: '{name}'")
    _check_status(schema, record, result)
    _COLLECTION_CHECKS[schema.collection](record, result)
    return result


# --- Türetilmiş alanlar ---

def _apply_document_totals(record: dict) -> None:
    subtotal = 0.0
    for item in record.get("items") or []:
        if not isinstance(item, dict):
            continue
        if item.get("total") is None and _is_number(item.get("quantity")) and _is_number(item.get("unitPrice")):
            discount = item.get("discount") or 0
            item["total"] = round(item["quantity"] * item["unitPrice"] * (1 - discount / 100), 2)
        if _is_number(item.get("total")):
            subtotal += item["total"]
    tax_rate = record.get("taxRate") or 0
    subtotal = round(subtotal, 2)
    tax_amount = round(subtotal * tax_rate / 100, 2) if _is_number(tax_rate) else 0
    record["subtotal"] = subtotal
    record["taxAmount"] = tax_amount
    record["total"] = round(subtotal + tax_amount, 2)


def _apply_derived(schema: EntitySchema, record: dict, patch: Optional[dict] = None) -> None:
    collection = schema.collection
    if collection == Collection.PRODUCTS:
        cost = record.get("costPrice")
        selling = record.get("sellingPrice")
        if _is_number(cost) and _is_number(selling):
            record["markup"] = round((selling - cost) / cost * 100, 2) if cost > 0 else 0.0
        if _is_int(record.get("stock")) and _is_int(record.get("reservedStock")):
            record["availableStock"] = record["stock"] - record["reservedStock"]
    elif schema.has_line_items and isinstance(record.get("items"), list):
        _apply_document_totals(record)
    elif collection == Collection.USERS:
        email = record.get("email")
        if isinstance(email, str) and not record.get("username"):
            record["username"] = email.split("@")[0]
        password = record.get("password")
        rehash = patch is None or "password" in patch
        if rehash and isinstance(password, str) and password and not is_password_hash(password):
            record["password"] = hash_password(password)


def check_unique(
    schema: EntitySchema, record: dict, existing: Iterable[dict], exclude_id: Optional[str] = None
) -> None:
    for other in existing:
        if exclude_id is not None and other.get("id") == exclude_id:
            continue
        if exclude_id is None and other.get("id") == record.get("id"):
            raise DuplicateKeyError(schema.collection.value, "id", record.get("id"))
        for name in schema.unique:
            value = record.get(name)
            if value is not None and other.get(name) == value:
                raise DuplicateKeyError(schema.collection.value, name, value)


def validate_collection(schema: EntitySchema, records: list) -> None:
    """Dışarıdan gelen tam bir koleksiyonu (içe aktarma, yedek) toplu doğrular.

    Kayıtlar olduğu gibi yazılacağından varsayılan ya da türetilmiş alan
    uygulanmaz; her kayıt şemaya uymalı ve id ile benzersiz alanlar liste
    içinde tekrar etmemeli.
    """
    collection = schema.collection
    if not isinstance(records, list):
        raise ValidationError(f"'{collection.value}' bir liste olmalı")
    seen: list[dict] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict) or _is_blank(record.get("id")):
            raise ValidationError(f"'{collection.value}[{index}]' id içeren bir nesne olmalı")
        result = validate_record(schema, record)
        if not result.is_valid:
            errors = [f"{collection.value}[{index}]: {e}" for e in result.errors]
            raise ValidationError(f"Geçersiz {collection.value} verisi: {'; '.join(errors)}", errors)
        try:
            check_unique(schema, record, seen)
        except DuplicateKeyError as e:
            raise ValidationError(f"{collection.value}[{index}]: {e}") from e
        seen.append(record)


# --- Oluşturma / güncelleme hazırlığı ---

def prepare_create(schema: EntitySchema, partial: Optional[dict], existing: Iterable[dict]) -> dict:
    """Yeni kaydı doğrular, varsayılanları ve türetilmiş alanları uygular."""
    data = copy.deepcopy(dict(partial or {}))
    record = copy.deepcopy(schema.defaults)
    record.update(data)

    if _is_blank(record.get("id")):
        record["id"] = generate_id(schema.id_prefix)
    now = next_timestamp()
    record["createdAt"] = record.get("createdAt") or now
    record["updatedAt"] = record.get("updatedAt") or record["createdAt"]
    if schema.number_field and _is_blank(record.get(schema.number_field)):
        record[schema.number_field] = generate_number(schema.number_prefix)

    validate_record(schema, record).raise_if_invalid(schema.collection)
    _apply_derived(schema, record)
    check_unique(schema, record, existing)
    return record


def prepare_update(schema: EntitySchema, current: dict, patch: Optional[dict], existing: Iterable[dict]) -> dict:
    """Yamayı mevcut kayda uygular; id ve createdAt değiştirilemez."""
    patch = copy.deepcopy(dict(patch or {}))
    result = ValidationResult()
    if "id" in patch and patch["id"] != current.get("id"):
        result.add("'id' değiştirilemez")
    if "createdAt" in patch and patch["createdAt"] != current.get("createdAt"):
        result.add("'createdAt' değiştirilemez")
    if schema.collection == Collection.AUTOMATION_RULES and "triggerCount" in patch:
        new_count = patch["triggerCount"]
        if _is_int(new_count) and new_count < current.get("triggerCount", 0):
            result.add("'triggerCount' azaltılamaz")
    result.raise_if_invalid(schema.collection)
    patch.pop("id", None)
    patch.pop("createdAt", None)

    record = copy.deepcopy(current)
    record.update(patch)
    record["updatedAt"] = next_timestamp(current.get("updatedAt"))

    validate_record(schema, record).raise_if_invalid(schema.collection)
    _apply_derived(schema, record, patch)
    check_unique(schema, record, existing, exclude_id=current["id"])
    return record
