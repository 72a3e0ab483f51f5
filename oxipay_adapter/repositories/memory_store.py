from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from uuid import UUID

from oxipay_adapter.domain.models import Order


class InMemoryOrderStore:
    """Simple in-memory order repository with per-order locks."""

    def __init__(self) -> None:
        self.by_id: Dict[int, Order] = {}
        self.by_guid: Dict[UUID, int] = {}
        # entries vanish once no caller holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[UUID, threading.Lock] = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def add(self, order: Order) -> Order:
        oid = order.id or (max(self.by_id.keys(), default=0) + 1)
        order.id = oid
        self.by_id[oid] = order
        self.by_guid[order.order_guid] = oid
        return order

    def clear(self) -> None:
        self.by_id.clear()
        self.by_guid.clear()
        self._locks.clear()

    def get_by_guid(self, order_guid: UUID) -> Optional[Order]:
        order_id = self.by_guid.get(order_guid)
        if order_id:
            return self.by_id.get(order_id)
        return None

    def get_by_id(self, order_id: int) -> Optional[Order]:
        return self.by_id.get(order_id)

    def latest_for_customer(self, customer_id: int) -> Optional[Order]:
        orders = [o for o in self.by_id.values() if o.customer_id == customer_id]
        if not orders:
            return None
        return max(orders, key=lambda o: (o.created_at, o.id or 0))

    def save_attribute(self, order_guid: UUID, key: str, value: Any) -> None:
        order = self.get_by_guid(order_guid)
        if order is not None:
            order.attributes[key] = value

    def _lock_for(self, order_guid: UUID) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(order_guid)
            if lock is None:
                lock = threading.Lock()
                self._locks[order_guid] = lock
            return lock

    @contextmanager
    def locked(self, order_guid: UUID) -> Iterator[Optional[Order]]:
        """Hold the order's lock while the caller inspects and mutates it."""
        with self._lock_for(order_guid):
            yield self.get_by_guid(order_guid)
