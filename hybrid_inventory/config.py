"""Merkezi .env yukleyici ve depolama konfigurasyonu.

Proje kokundeki .env dosyasi import aninda yuklenir; ortam degiskenleri
her zaman dosyadaki degerlerden onceliklidir.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from hybrid_inventory.models.entities import StorageMode

# Proje kokundeki .env dosyasini bul ve yukle
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} bool olmali, alinan: {raw!r}")


def _parse_int(name: str, raw: str, minimum: int = 0) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} tam sayi olmali, alinan: {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} en az {minimum} olmali, alinan: {value}")
    return value


@dataclass
class StorageConfig:
    mode: StorageMode = StorageMode.LOCAL
    sync_enabled: bool = False
    sync_interval_ms: int = 30000
    max_backups: int = 5
    auto_backup_interval_ms: int = 300000
    data_dir: str = ".data"
    key_prefix: str = "inv_v2_"
    operation_timeout_s: Optional[float] = None
    serialize_writes: bool = True
    seed_defaults: bool = True
    automation_interval_ms: int = 0
    aws_region: str = "us-west-2"
    dynamodb_endpoint: Optional[str] = None
    remote_table_prefix: str = "inventory_"
    admin_email: str = "admin@example.com"
    admin_password: str = "defaultpass"
    warehouse_email: str = "warehouse@example.com"
    warehouse_password: str = "defaultpass"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StorageConfig":
        """Ortam degiskenlerinden konfigurasyon olusturur."""
        env = os.environ if environ is None else environ
        config = cls()

        mode = env.get("STORAGE_MODE")
        if mode:
            try:
                config.mode = StorageMode(mode.strip().lower())
            except ValueError:
                raise ValueError(
                    f"STORAGE_MODE local|cloud|hybrid olmali, alinan: {mode!r}"
                ) from None

        if "STORAGE_SYNC_ENABLED" in env:
            config.sync_enabled = _parse_bool("STORAGE_SYNC_ENABLED", env["STORAGE_SYNC_ENABLED"])
        if "STORAGE_SYNC_INTERVAL_MS" in env:
            config.sync_interval_ms = _parse_int("STORAGE_SYNC_INTERVAL_MS", env["STORAGE_SYNC_INTERVAL_MS"], minimum=1)
        if "STORAGE_MAX_BACKUPS" in env:
            config.max_backups = _parse_int("STORAGE_MAX_BACKUPS", env["STORAGE_MAX_BACKUPS"], minimum=1)
        if "STORAGE_AUTO_BACKUP_INTERVAL_MS" in env:
            config.auto_backup_interval_ms = _parse_int(
                "STORAGE_AUTO_BACKUP_INTERVAL_MS", env["STORAGE_AUTO_BACKUP_INTERVAL_MS"]
            )
        if "AUTOMATION_INTERVAL_MS" in env:
            config.automation_interval_ms = _parse_int("AUTOMATION_INTERVAL_MS", env["AUTOMATION_INTERVAL_MS"])
        if env.get("STORAGE_OPERATION_TIMEOUT_S"):
            raw = env["STORAGE_OPERATION_TIMEOUT_S"]
            try:
                config.operation_timeout_s = float(raw)
            except ValueError:
                raise ValueError(f"STORAGE_OPERATION_TIMEOUT_S sayi olmali, alinan: {raw!r}") from None
            if config.operation_timeout_s <= 0:
                raise ValueError("STORAGE_OPERATION_TIMEOUT_S pozitif olmali")
        if "STORAGE_SERIALIZE_WRITES" in env:
            config.serialize_writes = _parse_bool("STORAGE_SERIALIZE_WRITES", env["STORAGE_SERIALIZE_WRITES"])
        if "STORAGE_SEED_DEFAULTS" in env:
            config.seed_defaults = _parse_bool("STORAGE_SEED_DEFAULTS", env["STORAGE_SEED_DEFAULTS"])

        config.data_dir = env.get("STORAGE_DATA_DIR", config.data_dir)
        config.key_prefix = env.get("STORAGE_KEY_PREFIX", config.key_prefix)
        config.aws_region = env.get("AWS_DEFAULT_REGION", config.aws_region)
        config.dynamodb_endpoint = env.get("DYNAMODB_ENDPOINT") or None
        config.remote_table_prefix = env.get("REMOTE_TABLE_PREFIX", config.remote_table_prefix)
        config.admin_email = env.get("ADMIN_EMAIL", config.admin_email)
        config.admin_password = env.get("ADMIN_PASSWORD", config.admin_password)
        config.warehouse_email = env.get("WAREHOUSE_EMAIL", config.warehouse_email)
        config.warehouse_password = env.get("WAREHOUSE_PASSWORD", config.warehouse_password)
        return config
