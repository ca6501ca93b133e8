"""Uzak sağlayıcı: DynamoDB üzerinde aynı CRUD sözleşmesi.

Her koleksiyon için bir tablo (hash key: id). boto3 çağrıları senkron
olduğundan asyncio.to_thread ile çalıştırılır. botocore hataları sınırda
StorageUnavailable alt sınıflarına çevrilir.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from hybrid_inventory.models.entities import Collection, ProviderKind
from hybrid_inventory.models.schema import get_schema
from hybrid_inventory.storage.base import StorageProvider
from hybrid_inventory.storage.errors import (
    AuthenticationError,
    ConnectivityError,
    DuplicateKeyError,
    NotFoundError,
    SchemaMismatchError,
    StorageUnavailable,
)
from hybrid_inventory.storage.field_mapping import WIRE_TABLE_NAMES, from_wire, to_wire
from hybrid_inventory.storage.validation import prepare_create, prepare_update

logger = logging.getLogger(__name__)

BOTO_CONFIG = Config(retries={"max_attempts": 3}, connect_timeout=5, read_timeout=10)

_AUTH_ERROR_CODES = {
    "UnrecognizedClientException",
    "AccessDeniedException",
    "ExpiredTokenException",
    "InvalidSignatureException",
}


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def translate_error(error: Exception, provider: str = ProviderKind.CLOUD.value) -> StorageUnavailable:
    """botocore hatasını StorageUnavailable hiyerarşisine çevirir."""
    if isinstance(error, NoCredentialsError):
        return AuthenticationError(f"AWS kimlik bilgisi bulunamadı: {error}", provider=provider)
    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return ConnectivityError(f"DynamoDB'ye ulaşılamıyor: {error}", provider=provider)
    if isinstance(error, ClientError):
        code = _error_code(error)
        if code in _AUTH_ERROR_CODES:
            return AuthenticationError(f"DynamoDB yetkilendirme hatası [{code}]: {error}", provider=provider)
        if code == "ResourceNotFoundException":
            return SchemaMismatchError(f"DynamoDB tablosu bulunamadı: {error}", provider=provider)
    return StorageUnavailable(f"DynamoDB hatası: {error}", provider=provider)


class RemoteProvider(StorageProvider):
    """DynamoDB tabanlı ağ deposu."""

    kind = ProviderKind.CLOUD

    def __init__(
        self,
        dynamodb_resource: Optional[Any] = None,
        *,
        region_name: str = "us-west-2",
        endpoint_url: Optional[str] = None,
        table_prefix: str = "inventory_",
    ):
        self.region_name = region_name
        self.table_prefix = table_prefix
        # dependency injection destekli
        self.dynamodb = dynamodb_resource or boto3.resource(
            "dynamodb", region_name=region_name, endpoint_url=endpoint_url, config=BOTO_CONFIG
        )
        self._tables: dict[Collection, Any] = {}
        logger.info("Uzak sağlayıcı hazır (region: %s, önek: %s)", region_name, table_prefix)

    def table_name(self, collection: Collection) -> str:
        return f"{self.table_prefix}{WIRE_TABLE_NAMES[collection]}"

    def _table(self, collection: Collection):
        if collection not in self._tables:
            self._tables[collection] = self.dynamodb.Table(self.table_name(collection))
        return self._tables[collection]

    async def _call(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e) from e

    def _scan_all(self, collection: Collection) -> list[dict]:
        table = self._table(collection)
        items: list[dict] = []
        params: dict = {}
        while True:
            response = table.scan(**params)
            items.extend(response.get("Items", []))
            if "LastEvaluatedKey" not in response:
                break
            params["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        return [from_wire(collection, item) for item in items]

    def _get_item(self, collection: Collection, record_id: str) -> Optional[dict]:
        response = self._table(collection).get_item(Key={"id": record_id})
        item = response.get("Item")
        return from_wire(collection, item) if item else None

    async def _conditional(self, fn, on_conflict: Exception, **kwargs):
        try:
            return await asyncio.to_thread(fn, **kwargs)
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise on_conflict from e
            raise translate_error(e) from e
        except BotoCoreError as e:
            raise translate_error(e) from e

    # --- CRUD ---

    async def create(self, collection: Collection, data: Optional[dict]) -> dict:
        schema = get_schema(collection)
        existing = await self._call(self._scan_all, collection)
        record = prepare_create(schema, data, existing)
        await self._conditional(
            self._table(collection).put_item,
            DuplicateKeyError(collection.value, "id", record["id"]),
            Item=to_wire(collection, record),
            ConditionExpression="attribute_not_exists(id)",
        )
        self.log_operation("CREATE", collection, record["id"])
        return record

    async def list(self, collection: Collection) -> list[dict]:
        records = await self._call(self._scan_all, collection)
        self.log_operation("LIST", collection)
        return records

    async def get(self, collection: Collection, record_id: str) -> dict:
        record = await self._call(self._get_item, collection, record_id)
        if record is None:
            raise NotFoundError(collection.value, record_id)
        return record

    async def update(self, collection: Collection, record_id: str, patch: Optional[dict]) -> dict:
        schema = get_schema(collection)
        current = await self.get(collection, record_id)
        existing = await self._call(self._scan_all, collection) if schema.unique else [current]
        updated = prepare_update(schema, current, patch, existing)
        await self._conditional(
            self._table(collection).put_item,
            NotFoundError(collection.value, record_id),
            Item=to_wire(collection, updated),
            ConditionExpression="attribute_exists(id)",
        )
        self.log_operation("UPDATE", collection, record_id)
        return updated

    async def delete(self, collection: Collection, record_id: str) -> bool:
        await self._conditional(
            self._table(collection).delete_item,
            NotFoundError(collection.value, record_id),
            Key={"id": record_id},
            ConditionExpression="attribute_exists(id)",
        )
        self.log_operation("DELETE", collection, record_id)
        return True

    # --- Senkronizasyon ve bağlantı ---

    def _batch_put(self, collection: Collection, items: list[dict]) -> None:
        with self._table(collection).batch_writer() as batch:
            for item in items:
                batch.put_item(Item=item)

    async def push_records(self, collection: Collection, records: list[dict]) -> int:
        """Kayıtları olduğu gibi yazar (upsert); senkronizasyon için."""
        if not records:
            return 0
        items = [to_wire(collection, record) for record in records]
        await self._call(self._batch_put, collection, items)
        logger.info("[cloud] PUSH %s: %d kayıt", collection.value, len(items))
        return len(items)

    async def ping(self) -> bool:
        """describe_table ile bağlantıyı yoklar; hata durumunda StorageUnavailable."""
        await self._call(
            self.dynamodb.meta.client.describe_table,
            TableName=self.table_name(Collection.PRODUCTS),
        )
        return True
