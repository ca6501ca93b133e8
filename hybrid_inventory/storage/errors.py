"""Depolama katmanı hata hiyerarşisi.

Çağıranlar "girdi geçersiz" (ValidationError, DuplicateKeyError, NotFoundError)
ile "sistem şu an kaydedemiyor" (StorageUnavailable) durumlarını ayırt edebilir.
Koordinatör yalnızca StorageUnavailable durumunda ikincil sağlayıcıya geçer.
"""

from __future__ import annotations

from typing import Optional


class StorageError(Exception):
    """Tüm depolama hatalarının temel sınıfı."""
    pass


class ValidationError(StorageError):
    """Zorunlu alan eksik ya da alan değeri geçersiz."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class InsufficientStockError(ValidationError):
    """Yetersiz stok hatası."""
    pass


class DuplicateKeyError(StorageError):
    """Benzersizlik kısıtı ihlali (SKU, e-posta)."""

    def __init__(self, collection: str, field_name: str, value: object):
        super().__init__(f"{collection} içinde {field_name}='{value}' zaten mevcut")
        self.collection = collection
        self.field_name = field_name
        self.value = value


class NotFoundError(StorageError):
    """Bilinmeyen id ile güncelleme/silme/geri yükleme."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} içinde ID '{record_id}' bulunamadı")
        self.collection = collection
        self.record_id = record_id


class StorageUnavailable(StorageError):
    """Sağlayıcı G/Ç veya ağ hatası; koordinatörde fallback tetikler."""

    reason = "unavailable"

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ConnectivityError(StorageUnavailable):
    reason = "connectivity"


class AuthenticationError(StorageUnavailable):
    reason = "authentication"


class SchemaMismatchError(StorageUnavailable):
    reason = "schema_mismatch"


class OperationTimeout(StorageUnavailable):
    reason = "timeout"


class BackupNotSupportedError(StorageError, NotImplementedError):
    """Birincil sağlayıcı yedekleme/dışa aktarma desteklemiyor."""
    pass


class SyncError(StorageError):
    """Senkronizasyon taraması başarısız; çağırana yansıtılmaz, loglanır."""
    pass
