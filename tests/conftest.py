from __future__ import annotations

import asyncio
import pathlib
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from oxipay_adapter.config import Settings, settings
from oxipay_adapter.domain.models import Address, Order
from oxipay_adapter.routes import deps

MERCHANT_ID = "30199999"
SECRET = "s3cr3t-encryption-key"
STORE_URL = "https://shop.example.com/"
STOREFRONT_TOKEN = "storefront-secret"


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.headers: dict[str, str] = {}


@pytest.fixture
def cfg() -> Settings:
    return Settings(
        _env_file=None,
        oxipay_merchant_id=MERCHANT_ID,
        oxipay_encryption_key=SECRET,
        oxipay_use_sandbox=True,
        oxipay_region="Australia",
        store_url=STORE_URL,
        store_name="Demo Store",
        store_currency_code="AUD",
        db_host="",
    )


def make_order(**overrides) -> Order:
    values = dict(
        order_guid=uuid4(),
        total=Decimal("120.00"),
        customer_id=7,
        currency_code="AUD",
        shipping_address=Address(
            first_name="Jane",
            last_name="Citizen",
            email="jane@example.com",
            address1="1 George St",
            address2="Level 2",
            city="Sydney",
            state_abbreviation="NSW",
            country_code="AU",
            postcode="2000",
        ),
        created_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )
    values.update(overrides)
    return Order(**values)


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def gateway(monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    """Fake Oxipay: answers verification and refund POSTs, records every call."""
    state = SimpleNamespace(
        calls=[],
        verify_reply=FakeResponse(200, "VERIFIED"),
        refund_reply=FakeResponse(204),
        delay=0.0,
    )

    async def fake_post(self, url, headers=None, content=None, json=None, **kwargs):  # type: ignore[override]
        state.calls.append({"url": str(url), "headers": dict(headers or {}), "content": content})
        if state.delay:
            await asyncio.sleep(state.delay)
        reply = state.refund_reply if "ExternalRefund" in str(url) else state.verify_reply
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)
    return state


@pytest.fixture
def app_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Configure the process-wide settings used by the HTTP app."""
    monkeypatch.setattr(settings, "oxipay_merchant_id", MERCHANT_ID)
    monkeypatch.setattr(settings, "oxipay_encryption_key", SECRET)
    monkeypatch.setattr(settings, "oxipay_use_sandbox", True)
    monkeypatch.setattr(settings, "oxipay_region", "")
    monkeypatch.setattr(settings, "oxipay_online_refunds", True)
    monkeypatch.setattr(settings, "store_url", STORE_URL)
    monkeypatch.setattr(settings, "api_bearer_token", "testtoken")
    monkeypatch.setattr(settings, "storefront_token", STOREFRONT_TOKEN)
    return settings


@pytest.fixture
def store(app_settings):
    deps.store.clear()
    yield deps.store
    deps.store.clear()


@pytest.fixture
def client(store):
    from fastapi.testclient import TestClient

    from oxipay_adapter.main import app

    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": "Bearer testtoken"}
