"""Tüm depolama sağlayıcıları için ortak CRUD sözleşmesi."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from hybrid_inventory.models.entities import Collection, ProviderKind

logger = logging.getLogger(__name__)


class StorageProvider(ABC):
    """Tek bir fiziksel backend üzerinde tekdüze varlık deposu.

    Tüm işlemler asenkron modellenir (G/Ç içerebilir). Hatalar:
    ValidationError, DuplicateKeyError, NotFoundError, StorageUnavailable.
    """

    kind: ProviderKind

    @abstractmethod
    async def create(self, collection: Collection, data: Optional[dict]) -> dict:
        """id ve createdAt atayarak yeni kayıt oluşturur."""
        ...

    @abstractmethod
    async def list(self, collection: Collection) -> list[dict]:
        """Koleksiyondaki tüm kayıtları döndürür."""
        ...

    @abstractmethod
    async def get(self, collection: Collection, record_id: str) -> dict:
        """Tek kaydı döndürür; yoksa NotFoundError."""
        ...

    @abstractmethod
    async def update(self, collection: Collection, record_id: str, patch: Optional[dict]) -> dict:
        """Yamayı mevcut kayda birleştirir ve updatedAt'i artırır."""
        ...

    @abstractmethod
    async def delete(self, collection: Collection, record_id: str) -> bool:
        """Kaydı siler; yoksa NotFoundError."""
        ...

    def log_operation(self, operation: str, collection: Collection, record_id: Optional[str] = None) -> None:
        suffix = f" (ID: {record_id})" if record_id else ""
        logger.info("[%s] %s %s%s", self.kind.value, operation, collection.value, suffix)
