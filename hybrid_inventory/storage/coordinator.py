"""Hibrit koordinatör - birincil/ikincil sağlayıcı seçimi, fallback ve senkronizasyon.

Modlar:
- local: birincil yerel, ikincil uzak
- cloud: birincil uzak, ikincil yerel
- hybrid: çevrimiçiyken uzak, çevrimdışıyken yerel birincil

Yalnızca StorageUnavailable ikincil sağlayıcıya geçişi tetikler; doğrulama,
benzersizlik ve bulunamadı hataları doğrudan çağırana iletilir.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional, Union

from hybrid_inventory.config import StorageConfig
from hybrid_inventory.events import EventBus, EventType
from hybrid_inventory.models.entities import (
    Collection,
    CoordinatorState,
    ProviderKind,
    StorageInfo,
    StorageMode,
    SyncStatus,
    utc_now_iso,
)
from hybrid_inventory.storage.backends import JsonFileStore
from hybrid_inventory.storage.base import StorageProvider
from hybrid_inventory.storage.errors import (
    BackupNotSupportedError,
    OperationTimeout,
    StorageError,
    StorageUnavailable,
    SyncError,
)
from hybrid_inventory.storage.local import LocalProvider
from hybrid_inventory.storage.remote import RemoteProvider

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    CREATE = "create"
    LIST = "list"
    GET = "get"
    UPDATE = "update"
    DELETE = "delete"


_EVENT_FOR_OPERATION = {
    OperationKind.CREATE: EventType.ENTITY_CREATED,
    OperationKind.UPDATE: EventType.ENTITY_UPDATED,
    OperationKind.DELETE: EventType.ENTITY_DELETED,
}

ACCESSOR_NAMES = {
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


class CollectionAccessor:
    """Tek koleksiyon için koordinatör kısayolları: coordinator.products.create(...)."""

    def __init__(self, coordinator: "HybridCoordinator", collection: Collection):
        self._coordinator = coordinator
        self.collection = collection

    async def create(self, data: Optional[dict] = None) -> dict:
        return await self._coordinator.create(self.collection, data)

    async def list(self) -> list[dict]:
        return await self._coordinator.list(self.collection)

    async def get(self, record_id: str) -> dict:
        return await self._coordinator.get(self.collection, record_id)

    async def update(self, record_id: str, patch: Optional[dict]) -> dict:
        return await self._coordinator.update(self.collection, record_id, patch)

    async def delete(self, record_id: str) -> bool:
        return await self._coordinator.delete(self.collection, record_id)


class HybridCoordinator:
    """Sağlayıcı çifti üzerinde fallback'li işlem yürütücü.

    Servis başlangıcında bir kez oluşturulur ve çağıranlara iletilir;
    start()/stop() yalnızca periyodik senkronizasyon ve otomatik yedekleme
    döngülerini yönetir.
    """

    def __init__(
        self,
        local: LocalProvider,
        remote: Optional[RemoteProvider] = None,
        config: Optional[StorageConfig] = None,
        event_bus: Optional[EventBus] = None,
        is_online: bool = True,
    ):
        self.local = local
        self.remote = remote
        self.config = config or StorageConfig()
        self.event_bus = event_bus or EventBus()
        self.mode = self.config.mode
        self.is_online = is_online
        self.operation_timeout_s = self.config.operation_timeout_s

        self._fallback_kinds: set[OperationKind] = set(OperationKind)
        self._sync_status = SyncStatus()
        self._sync_in_progress = False
        self._tasks: list[asyncio.Task] = []

        self._primary, self._secondary = self._SELECTORS[self.mode](self)

        for collection, attr in ACCESSOR_NAMES.items():
            setattr(self, attr, CollectionAccessor(self, collection))

        logger.info(
            "Koordinatör hazır: mod=%s, birincil=%s",
            self.mode.value,
            self._primary.kind.value,
        )

    # --- Sağlayıcı seçimi ---

    def _select_local(self) -> tuple[StorageProvider, Optional[StorageProvider]]:
        return self.local, self.remote

    def _select_cloud(self) -> tuple[StorageProvider, Optional[StorageProvider]]:
        if self.remote is None:
            raise ValueError("cloud modu için uzak sağlayıcı gerekli")
        return self.remote, self.local

    def _select_hybrid(self) -> tuple[StorageProvider, Optional[StorageProvider]]:
        if self.is_online and self.remote is not None:
            return self.remote, self.local
        return self.local, self.remote

    _SELECTORS = {
        StorageMode.LOCAL: _select_local,
        StorageMode.CLOUD: _select_cloud,
        StorageMode.HYBRID: _select_hybrid,
    }
    assert set(_SELECTORS) == set(StorageMode), "Her mod için seçici tanımlı olmalı"

    def _select_providers(self) -> None:
        previous = self._primary
        self._primary, self._secondary = self._SELECTORS[self.mode](self)
        if self._primary is not previous:
            logger.info(
                "Birincil sağlayıcı değişti: %s -> %s (mod=%s, çevrimiçi=%s)",
                previous.kind.value,
                self._primary.kind.value,
                self.mode.value,
                self.is_online,
            )
            self.event_bus.emit(
                EventType.PROVIDER_SWITCHED,
                "coordinator",
                previous=previous.kind.value,
                primary=self._primary.kind.value,
                mode=self.mode.value,
                isOnline=self.is_online,
            )

    @property
    def primary(self) -> StorageProvider:
        return self._primary

    @property
    def secondary(self) -> Optional[StorageProvider]:
        return self._secondary

    @property
    def state(self) -> CoordinatorState:
        if self._primary.kind == ProviderKind.CLOUD:
            return CoordinatorState.REMOTE_ACTIVE
        return CoordinatorState.LOCAL_ACTIVE

    def get_storage_info(self) -> StorageInfo:
        return StorageInfo(
            mode=self.mode,
            is_online=self.is_online,
            primary_provider=self._primary.kind,
            secondary_provider=self._secondary.kind if self._secondary else None,
            sync_enabled=self.config.sync_enabled,
            sync_interval_ms=self.config.sync_interval_ms,
        )

    def switch_storage_mode(self, mode: Union[StorageMode, str]) -> StorageInfo:
        """Modu değiştirir ve sağlayıcı seçimini hemen yeniden yapar."""
        try:
            new_mode = StorageMode(mode)
        except ValueError:
            raise ValueError(f"Geçersiz depolama modu: {mode!r}") from None
        previous = self.mode
        self.mode = new_mode
        try:
            self._select_providers()
        except ValueError:
            self.mode = previous
            raise
        logger.info("Depolama modu değişti: %s -> %s", previous.value, new_mode.value)
        return self.get_storage_info()

    # --- Bağlantı ---

    async def set_online(self, online: bool) -> None:
        """Çevrimiçi/çevrimdışı geçiş sinyali."""
        was_online = self.is_online
        self.is_online = online
        if was_online != online:
            logger.info("Bağlantı durumu: %s", "çevrimiçi" if online else "çevrimdışı")
        self._select_providers()
        if online and not was_online and self.mode == StorageMode.HYBRID:
            await self.sync_to_remote()

    async def refresh_connectivity(self) -> bool:
        """Uzak sağlayıcıyı yoklar ve sonucu bağlantı sinyali olarak işler."""
        online = False
        if self.remote is not None:
            try:
                online = await self.remote.ping()
            except StorageUnavailable as e:
                logger.warning("Uzak sağlayıcıya ulaşılamadı: %s", e)
        await self.set_online(online)
        return online

    # --- Fallback ---

    def register_fallback(self, kind: Union[OperationKind, str]) -> None:
        self._fallback_kinds.add(OperationKind(kind))

    def unregister_fallback(self, kind: Union[OperationKind, str]) -> None:
        self._fallback_kinds.discard(OperationKind(kind))

    async def _run(self, provider: StorageProvider, kind: OperationKind, collection: Collection, *args):
        operation = getattr(provider, kind.value)(collection, *args)
        if not self.operation_timeout_s:
            return await operation
        try:
            return await asyncio.wait_for(operation, self.operation_timeout_s)
        except asyncio.TimeoutError:
            raise OperationTimeout(
                f"{provider.kind.value} {kind.value} {collection.value} "
                f"{self.operation_timeout_s}s içinde tamamlanmadı",
                provider=provider.kind.value,
            ) from None

    async def _execute(self, kind: OperationKind, collection: Collection, *args):
        primary, secondary = self._primary, self._secondary
        try:
            result = await self._run(primary, kind, collection, *args)
            served_by = primary
        except StorageUnavailable as primary_error:
            if secondary is None or kind not in self._fallback_kinds:
                raise
            logger.warning(
                "Birincil sağlayıcı başarısız (%s %s %s): %s - ikincil deneniyor",
                primary.kind.value,
                kind.value,
                collection.value,
                primary_error,
            )
            try:
                result = await self._run(secondary, kind, collection, *args)
            except StorageUnavailable as secondary_error:
                logger.error(
                    "İkincil sağlayıcı da başarısız (%s %s %s): %s",
                    secondary.kind.value,
                    kind.value,
                    collection.value,
                    secondary_error,
                )
                raise
            served_by = secondary

        event_type = _EVENT_FOR_OPERATION.get(kind)
        if event_type is not None:
            record_id = args[0] if kind == OperationKind.DELETE else result.get("id")
            self.event_bus.emit(
                event_type,
                "coordinator",
                collection=collection.value,
                id=record_id,
                provider=served_by.kind.value,
            )
        return result

    async def create(self, collection: Collection, data: Optional[dict] = None) -> dict:
        return await self._execute(OperationKind.CREATE, collection, data)

    async def list(self, collection: Collection) -> list[dict]:
        return await self._execute(OperationKind.LIST, collection)

    async def get(self, collection: Collection, record_id: str) -> dict:
        return await self._execute(OperationKind.GET, collection, record_id)

    async def update(self, collection: Collection, record_id: str, patch: Optional[dict]) -> dict:
        return await self._execute(OperationKind.UPDATE, collection, record_id, patch)

    async def delete(self, collection: Collection, record_id: str) -> bool:
        return await self._execute(OperationKind.DELETE, collection, record_id)

    # --- Yedekleme / dışa aktarma (yalnızca yerel birincilde) ---

    def _backup_manager(self, operation: str) -> LocalProvider:
        if self._primary is not self.local:
            raise BackupNotSupportedError(
                f"{operation} yalnızca yerel birincil sağlayıcıda desteklenir "
                f"(birincil: {self._primary.kind.value})"
            )
        return self.local

    async def create_backup(self) -> dict:
        return await self._backup_manager("createBackup").create_backup()

    async def list_backups(self) -> list[dict]:
        return await self._backup_manager("listBackups").list_backups()

    async def restore_backup(self, backup_id: str) -> dict:
        return await self._backup_manager("restoreBackup").restore_backup(backup_id)

    async def export_data(self) -> dict:
        return await self._backup_manager("exportData").export_data()

    async def import_data(self, document: Union[str, dict]) -> dict:
        return await self._backup_manager("importData").import_data(document)

    async def get_stats(self) -> dict:
        return await self._backup_manager("getStats").get_stats()

    async def clear_all_data(self) -> None:
        await self._backup_manager("clearAllData").clear_all_data()

    # --- Senkronizasyon ---

    def get_sync_status(self) -> SyncStatus:
        return self._sync_status

    async def sync_to_remote(self) -> SyncStatus:
        """Yerel koleksiyonları uzağa iter; hata çağırana yansıtılmaz."""
        status = self._sync_status
        if self._sync_in_progress:
            logger.info("Senkronizasyon zaten çalışıyor, atlanıyor")
            return status

        self._sync_in_progress = True
        status.last_attempt_at = utc_now_iso()
        try:
            if self.remote is None:
                raise SyncError("Uzak sağlayıcı tanımlı değil")
            snapshot = await self.local.snapshot()
            pushed = {}
            for name, records in snapshot.items():
                pushed[name] = await self.remote.push_records(Collection(name), records)
        except StorageError as e:
            status.success = False
            status.error = f"{type(e).__name__}: {e}"
            status.consecutive_failures += 1
            logger.error(
                "Senkronizasyon başarısız (%d. ardışık hata): %s",
                status.consecutive_failures,
                status.error,
            )
        else:
            status.success = True
            status.error = None
            status.pushed = pushed
            status.last_success_at = utc_now_iso()
            status.consecutive_failures = 0
            logger.info("Senkronizasyon tamamlandı: %d kayıt", sum(pushed.values()))
        finally:
            self._sync_in_progress = False

        self.event_bus.emit(EventType.SYNC_STATUS, "coordinator", **status.to_dict())
        return status

    # --- Yaşam döngüsü ---

    async def start(self) -> None:
        if self._tasks:
            return
        if self.mode == StorageMode.HYBRID and self.remote is not None:
            await self.refresh_connectivity()
        if self.config.sync_enabled:
            self._tasks.append(asyncio.create_task(self._sync_loop()))
        if self.config.auto_backup_interval_ms > 0:
            self._tasks.append(asyncio.create_task(self._auto_backup_loop()))
        logger.info("Koordinatör başlatıldı (%d arka plan görevi)", len(self._tasks))

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Koordinatör durduruldu")

    async def _sync_loop(self) -> None:
        interval = self.config.sync_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            if self.mode != StorageMode.HYBRID or not self.is_online:
                continue
            try:
                await self.sync_to_remote()
            except Exception:
                logger.exception("Senkronizasyon döngüsünde beklenmeyen hata")

    async def _auto_backup_loop(self) -> None:
        interval = self.config.auto_backup_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            if self._primary is not self.local:
                continue
            try:
                await self.local.create_backup()
            except StorageError as e:
                logger.error("Otomatik yedekleme başarısız: %s", e)


def create_coordinator(
    config: Optional[StorageConfig] = None,
    dynamodb_resource=None,
    event_bus: Optional[EventBus] = None,
    store=None,
) -> HybridCoordinator:
    """Konfigürasyondan yerel + uzak sağlayıcılı koordinatör kurar."""
    config = config or StorageConfig.from_env()
    local = LocalProvider(
        store if store is not None else JsonFileStore(config.data_dir),
        key_prefix=config.key_prefix,
        max_backups=config.max_backups,
        seed_defaults=config.seed_defaults,
        serialize_writes=config.serialize_writes,
        admin_email=config.admin_email,
        admin_password=config.admin_password,
        warehouse_email=config.warehouse_email,
        warehouse_password=config.warehouse_password,
    )
    remote = RemoteProvider(
        dynamodb_resource,
        region_name=config.aws_region,
        endpoint_url=config.dynamodb_endpoint,
        table_prefix=config.remote_table_prefix,
    )
    return HybridCoordinator(local, remote, config=config, event_bus=event_bus)
