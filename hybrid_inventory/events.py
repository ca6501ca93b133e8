"""Olay yolu - depolama ve otomasyon bileşenlerinin dış dünyaya sinyalleri.

- Varlık olayları (oluşturma, güncelleme, silme)
- Sağlayıcı geçişleri ve senkronizasyon durumu
- Kural tetiklenmeleri ve düşük stok uyarıları
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from hybrid_inventory.models.entities import utc_now_iso

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    PROVIDER_SWITCHED = "provider_switched"
    SYNC_STATUS = "sync_status"
    RULE_TRIGGERED = "rule_triggered"
    LOW_STOCK_ALERT = "low_stock_alert"


@dataclass
class Event:
    event_type: EventType
    source: str
    payload: dict
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=utc_now_iso)


EventHandler = Callable[[Event], None]


class EventBus:
    """Basit yayın/abone sistemi; handler hataları diğer abonelere yansımaz."""

    def __init__(self, max_log_size: int = 1000) -> None:
        self._handlers: dict[Optional[EventType], list[EventHandler]] = {}
        self._event_log: list[Event] = []
        self._max_log_size = max_log_size
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        """Handler kaydeder; event_type None ise tüm olayları alır."""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> bool:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def publish(self, event: Event) -> int:
        """Olayı yayınlar; başarılı teslim sayısını döndürür."""
        with self._lock:
            self._event_log.append(event)
            if len(self._event_log) > self._max_log_size:
                del self._event_log[: len(self._event_log) - self._max_log_size]
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._handlers.get(None, []))

        logger.debug("Olay yayınlandı: %s [%s]", event.event_type.value, event.source)
        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    "Olay handler hatası (%s): %s: %s",
                    event.event_type.value,
                    type(e).__name__,
                    e,
                )
        return delivered

    def emit(self, event_type: EventType, source: str, **payload) -> Event:
        event = Event(event_type=event_type, source=source, payload=payload)
        self.publish(event)
        return event

    def get_event_log(self, event_type: Optional[EventType] = None) -> list[Event]:
        with self._lock:
            if event_type is None:
                return list(self._event_log)
            return [e for e in self._event_log if e.event_type == event_type]
