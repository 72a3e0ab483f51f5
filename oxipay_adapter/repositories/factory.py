from __future__ import annotations

from oxipay_adapter.config import Settings

from .memory_store import InMemoryOrderStore
from .pg_store import PgOrderStore


def get_order_store(settings: Settings) -> InMemoryOrderStore | PgOrderStore:
    """Return the order store based on configuration."""
    if settings.db_enabled:
        return PgOrderStore(settings)
    return InMemoryOrderStore()
