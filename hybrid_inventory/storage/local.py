"""Yerel sağlayıcı: anahtar-koleksiyon deposu, yedekleme ve dışa/içe aktarma.

Her koleksiyon depoda tek bir JSON listesi olarak tutulur. Yazma işlemleri
"oku, değiştir, yaz" şeklindedir; serialize_writes açıkken koleksiyon başına
bir asyncio.Lock bu döngüyü sıraya sokar.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Optional, Union

from hybrid_inventory.models.entities import Collection, ProviderKind, utc_now_iso
from hybrid_inventory.models.schema import get_schema
from hybrid_inventory.storage.backends import MemoryStore
from hybrid_inventory.storage.base import StorageProvider
from hybrid_inventory.storage.errors import NotFoundError, StorageUnavailable, ValidationError
from hybrid_inventory.storage.seed import (
    SAMPLE_CUSTOMERS,
    SAMPLE_PRODUCTS,
    SAMPLE_SUPPLIERS,
    default_users,
)
from hybrid_inventory.storage.validation import (
    generate_id,
    prepare_create,
    prepare_update,
    validate_collection,
)

logger = logging.getLogger(__name__)

STORAGE_VERSION = "2.0.0"

_METADATA = "metadata"
_BACKUPS = "backups"


class LocalProvider(StorageProvider):
    """Aynı makinedeki kalıcı depo üzerinde CRUD + yedekleme yöneticisi."""

    kind = ProviderKind.LOCAL

    def __init__(
        self,
        store=None,
        *,
        key_prefix: str = "inv_v2_",
        max_backups: int = 5,
        seed_defaults: bool = True,
        serialize_writes: bool = True,
        admin_email: str = "admin@example.com",
        admin_password: str = "defaultpass",
        warehouse_email: str = "warehouse@example.com",
        warehouse_password: str = "defaultpass",
    ):
        if max_backups < 1:
            raise ValueError("max_backups en az 1 olmalı")
        self.store = store if store is not None else MemoryStore()
        self.key_prefix = key_prefix
        self.max_backups = max_backups
        self.seed_defaults = seed_defaults
        self.serialize_writes = serialize_writes
        self._credentials = (admin_email, admin_password, warehouse_email, warehouse_password)
        self._initialized = False
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    # --- Anahtarlar ve kilitler ---

    def _key(self, name: Union[Collection, str]) -> str:
        suffix = name.value if isinstance(name, Collection) else name
        return f"{self.key_prefix}{suffix}"

    def _lock(self, name: str) -> asyncio.Lock:
        # Kilitler çalışan event loop'a bağlıdır; loop değişirse yenilenir
        loop = asyncio.get_running_loop()
        if self._lock_loop is not loop:
            self._locks = {}
            self._lock_loop = loop
        return self._locks.setdefault(name, asyncio.Lock())

    def _write_guard(self, name: str):
        if not self.serialize_writes:
            return contextlib.nullcontext()
        return self._lock(name)

    # --- Ham G/Ç ---

    async def _read_raw(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self.store.read, key)
        except OSError as e:
            raise StorageUnavailable(f"Yerel depo okunamadı ({key}): {e}", provider=self.kind.value) from e

    async def _read_json(self, key: str, default: Any) -> Any:
        raw = await self._read_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(f"Bozuk JSON ({key}): {e}", provider=self.kind.value) from e

    async def _write_json(self, key: str, value: Any) -> None:
        text = json.dumps(value, ensure_ascii=False)
        try:
            await asyncio.to_thread(self.store.write, key, text)
        except OSError as e:
            raise StorageUnavailable(f"Yerel depoya yazılamadı ({key}): {e}", provider=self.kind.value) from e

    async def _load(self, collection: Collection) -> list[dict]:
        records = await self._read_json(self._key(collection), [])
        if not isinstance(records, list):
            raise StorageUnavailable(f"{collection.value} koleksiyonu liste değil", provider=self.kind.value)
        return records

    async def _save(self, collection: Collection, records: list[dict]) -> None:
        await self._write_json(self._key(collection), records)
        await self._update_metadata({collection: len(records)})

    # --- Başlatma ve metadata ---

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        async with self._lock("__init__"):
            if self._initialized:
                return
            await self._initialize()
            self._initialized = True

    async def _initialize(self) -> None:
        metadata = await self._read_json(self._key(_METADATA), None)
        if not isinstance(metadata, dict) or metadata.get("version") != STORAGE_VERSION:
            if metadata:
                logger.warning(
                    "Depolama sürümü uyuşmuyor (%s != %s), metadata yeniden oluşturuluyor",
                    metadata.get("version") if isinstance(metadata, dict) else None,
                    STORAGE_VERSION,
                )
            await self._write_json(self._key(_METADATA), self._fresh_metadata())
        if self.seed_defaults:
            await self._seed()
        counts = {}
        for collection in Collection:
            counts[collection] = len(await self._load(collection))
        await self._update_metadata(counts)
        logger.info("Yerel depolama başlatıldı (sürüm %s)", STORAGE_VERSION)

    @staticmethod
    def _fresh_metadata() -> dict:
        now = utc_now_iso()
        return {
            "version": STORAGE_VERSION,
            "createdAt": now,
            "lastUpdated": now,
            "totalRecords": 0,
            "recordCounts": {},
            "lastBackup": None,
        }

    async def _update_metadata(self, counts: dict, **fields) -> None:
        async with self._write_guard("__metadata__"):
            metadata = await self._read_json(self._key(_METADATA), None)
            if not isinstance(metadata, dict):
                metadata = self._fresh_metadata()
            record_counts = metadata.setdefault("recordCounts", {})
            for collection, count in counts.items():
                record_counts[collection.value] = count
            metadata["totalRecords"] = sum(record_counts.values())
            metadata["lastUpdated"] = utc_now_iso()
            metadata.update(fields)
            await self._write_json(self._key(_METADATA), metadata)

    async def _seed_collection(self, collection: Collection, samples: list[dict]) -> None:
        schema = get_schema(collection)
        records: list[dict] = []
        for sample in samples:
            records.append(prepare_create(schema, sample, records))
        await self._write_json(self._key(collection), records)
        logger.info("%d örnek kayıt yüklendi: %s", len(records), collection.value)

    async def _seed(self) -> None:
        if not await self._load(Collection.USERS):
            await self._seed_collection(Collection.USERS, default_users(*self._credentials))
        if not await self._load(Collection.PRODUCTS):
            await self._seed_collection(Collection.PRODUCTS, SAMPLE_PRODUCTS)
            if not await self._load(Collection.CUSTOMERS):
                await self._seed_collection(Collection.CUSTOMERS, SAMPLE_CUSTOMERS)
            if not await self._load(Collection.SUPPLIERS):
                await self._seed_collection(Collection.SUPPLIERS, SAMPLE_SUPPLIERS)

    async def get_metadata(self) -> dict:
        await self._ensure_initialized()
        return await self._read_json(self._key(_METADATA), {})

    # --- CRUD ---

    async def create(self, collection: Collection, data: Optional[dict]) -> dict:
        await self._ensure_initialized()
        schema = get_schema(collection)
        async with self._write_guard(collection.value):
            records = await self._load(collection)
            record = prepare_create(schema, data, records)
            records.append(record)
            await self._save(collection, records)
        self.log_operation("CREATE", collection, record["id"])
        return record

    async def list(self, collection: Collection) -> list[dict]:
        await self._ensure_initialized()
        records = await self._load(collection)
        self.log_operation("LIST", collection)
        return records

    async def get(self, collection: Collection, record_id: str) -> dict:
        await self._ensure_initialized()
        for record in await self._load(collection):
            if record.get("id") == record_id:
                return record
        raise NotFoundError(collection.value, record_id)

    async def update(self, collection: Collection, record_id: str, patch: Optional[dict]) -> dict:
        await self._ensure_initialized()
        schema = get_schema(collection)
        async with self._write_guard(collection.value):
            records = await self._load(collection)
            for index, current in enumerate(records):
                if current.get("id") == record_id:
                    break
            else:
                raise NotFoundError(collection.value, record_id)
            updated = prepare_update(schema, current, patch, records)
            records[index] = updated
            await self._save(collection, records)
        self.log_operation("UPDATE", collection, record_id)
        return updated

    async def delete(self, collection: Collection, record_id: str) -> bool:
        await self._ensure_initialized()
        async with self._write_guard(collection.value):
            records = await self._load(collection)
            remaining = [record for record in records if record.get("id") != record_id]
            if len(remaining) == len(records):
                raise NotFoundError(collection.value, record_id)
            await self._save(collection, remaining)
        self.log_operation("DELETE", collection, record_id)
        return True

    async def replace_collection(self, collection: Collection, records: list[dict]) -> None:
        """Koleksiyonun tamamını verilen kayıtlarla değiştirir (geri yükleme/içe aktarma)."""
        await self._ensure_initialized()
        async with self._write_guard(collection.value):
            await self._save(collection, list(records))

    async def snapshot(self, include_users: bool = True) -> dict[str, list[dict]]:
        """Tüm yönetilen koleksiyonların anlık görüntüsü."""
        await self._ensure_initialized()
        data = {}
        for collection in Collection:
            if collection == Collection.USERS and not include_users:
                continue
            data[collection.value] = await self._load(collection)
        return data

    # --- Yedekleme ---

    async def create_backup(self) -> dict:
        await self._ensure_initialized()
        async with self._write_guard("__backups__"):
            data = await self.snapshot()
            data["metadata"] = await self._read_json(self._key(_METADATA), {})
            backup = {
                "id": generate_id("backup"),
                "timestamp": utc_now_iso(),
                "version": STORAGE_VERSION,
                "data": data,
            }
            backups = await self._read_json(self._key(_BACKUPS), [])
            backups.append(backup)
            # Önce ekle, sonra kırp: kırpma yarıda kalırsa en yeni yedek korunur
            await self._write_json(self._key(_BACKUPS), backups)
            if len(backups) > self.max_backups:
                await self._write_json(self._key(_BACKUPS), backups[-self.max_backups:])
        await self._update_metadata({}, lastBackup=backup["timestamp"])
        logger.info("Yedek oluşturuldu: %s", backup["id"])
        return backup

    async def list_backups(self) -> list[dict]:
        await self._ensure_initialized()
        return await self._read_json(self._key(_BACKUPS), [])

    async def restore_backup(self, backup_id: str) -> dict:
        await self._ensure_initialized()
        for backup in await self.list_backups():
            if backup.get("id") == backup_id:
                break
        else:
            raise NotFoundError("backups", backup_id)

        data = backup.get("data") or {}
        incoming = self._validate_incoming(data)
        restored = {}
        for collection, records in incoming.items():
            await self.replace_collection(collection, records)
            restored[collection.value] = len(records)
        logger.info("Yedek geri yüklendi: %s", backup_id)
        return restored

    @staticmethod
    def _validate_incoming(document: dict) -> dict:
        # Hiçbir koleksiyon, hepsi doğrulanmadan yazılmaz
        incoming = {}
        for collection in Collection:
            if collection.value in document:
                records = document[collection.value]
                validate_collection(get_schema(collection), records)
                incoming[collection] = records
        return incoming

    # --- Dışa / içe aktarma ---

    async def export_data(self) -> dict:
        await self._ensure_initialized()
        document = {"version": STORAGE_VERSION, "timestamp": utc_now_iso()}
        # Kullanıcılar (parola özetleri) dışa aktarılmaz
        document.update(await self.snapshot(include_users=False))
        document["metadata"] = await self._read_json(self._key(_METADATA), {})
        return document

    async def import_data(self, document: Union[str, dict]) -> dict:
        """JSON belgeyi içe aktarır; yalnızca belgede bulunan koleksiyonlar ezilir."""
        await self._ensure_initialized()
        if isinstance(document, str):
            try:
                document = json.loads(document)
            except json.JSONDecodeError as e:
                raise ValidationError(f"İçe aktarma belgesi geçerli JSON değil: {e}") from e
        if not isinstance(document, dict):
            raise ValidationError("İçe aktarma belgesi bir JSON nesnesi olmalı")

        version = document.get("version")
        if version != STORAGE_VERSION:
            logger.warning("İçe aktarma sürümü uyuşmuyor: %s != %s", version, STORAGE_VERSION)

        incoming = self._validate_incoming(document)
        imported = {}
        for collection, records in incoming.items():
            await self.replace_collection(collection, records)
            imported[collection.value] = len(records)
        logger.info("Veri içe aktarıldı: %s", imported)
        return imported

    async def get_stats(self) -> dict:
        await self._ensure_initialized()
        entities = {}
        sizes = {}
        for collection in Collection:
            raw = await self._read_raw(self._key(collection)) or "[]"
            entities[collection.value] = len(await self._load(collection))
            sizes[collection.value] = len(raw.encode("utf-8"))
        metadata = await self._read_json(self._key(_METADATA), {})
        return {
            "version": metadata.get("version", STORAGE_VERSION),
            "totalRecords": sum(entities.values()),
            "storageSize": sum(sizes.values()),
            "entities": entities,
            "sizes": sizes,
        }

    async def clear_all_data(self) -> None:
        """Önekli tüm anahtarları siler ve depoyu yeniden başlatır."""
        keys = await asyncio.to_thread(self.store.keys)
        for key in keys:
            if key.startswith(self.key_prefix):
                await asyncio.to_thread(self.store.remove, key)
        self._initialized = False
        await self._ensure_initialized()
        logger.info("Tüm yerel veriler temizlendi")
