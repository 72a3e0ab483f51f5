from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from oxipay_adapter.config import settings
from oxipay_adapter.domain.enums import Region
from oxipay_adapter.providers.urls import checkout_url

router = APIRouter()

SERVICE_STARTED_AT = datetime.now(timezone.utc)


@router.get("/health")
async def health() -> dict[str, Any]:
    """Simple health check endpoint for load balancers."""
    return {
        "status": "ok",
        "started_at": SERVICE_STARTED_AT.isoformat(),
        "sandbox": settings.oxipay_use_sandbox,
        "region": Region.from_setting(settings.oxipay_region).value,
        "gateway": checkout_url(settings),
        "configured": bool(settings.oxipay_merchant_id and settings.oxipay_encryption_key),
        "database": settings.db_enabled,
    }
