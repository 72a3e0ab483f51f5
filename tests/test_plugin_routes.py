from __future__ import annotations

from datetime import datetime, timedelta, timezone

from oxipay_adapter.domain.statuses import OrderStatus, PaymentStatus
from oxipay_adapter.providers.signing import sign

from .conftest import SECRET, STOREFRONT_TOKEN


def _return_params(order, result: str = "completed", gateway_reference: str = "PN-42") -> dict[str, str]:
    return {
        "x_reference": str(order.order_guid),
        "x_result": result,
        "x_gateway_reference": gateway_reference,
    }


def _storefront(customer_id: str) -> dict[str, str]:
    return {"X-Customer-Id": customer_id, "X-Storefront-Token": STOREFRONT_TOKEN}


def test_success_marks_paid_and_redirects(client, store, order_factory) -> None:
    order = store.add(order_factory())
    resp = client.get("/Plugins/PaymentOxipay/Success", params=_return_params(order), follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == f"https://shop.example.com/checkout/completed/{order.id}"
    assert order.payment_status == PaymentStatus.PAID
    assert [n.note for n in order.notes] == ["Oxipay order ID: PN-42"]


def test_success_declined_voids(client, store, order_factory) -> None:
    order = store.add(order_factory())
    resp = client.get(
        "/Plugins/PaymentOxipay/Success", params=_return_params(order, "failed"), follow_redirects=False
    )
    assert resp.status_code == 303
    assert order.payment_status == PaymentStatus.VOIDED


def test_success_unknown_order_goes_home(client, store) -> None:
    resp = client.get(
        "/Plugins/PaymentOxipay/Success",
        params={"x_reference": "12345", "x_result": "completed"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "https://shop.example.com/"


def test_success_with_valid_signature(client, store, order_factory) -> None:
    order = store.add(order_factory())
    params = _return_params(order)
    params["x_signature"] = sign(params, SECRET)
    client.get("/Plugins/PaymentOxipay/Success", params=params, follow_redirects=False)
    assert order.payment_status == PaymentStatus.PAID


def test_success_with_forged_signature_is_ignored(client, store, order_factory) -> None:
    order = store.add(order_factory())
    params = _return_params(order)
    params["x_signature"] = "0" * 64
    resp = client.get("/Plugins/PaymentOxipay/Success", params=params, follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == f"https://shop.example.com/checkout/completed/{order.id}"
    assert order.payment_status == PaymentStatus.PENDING
    assert order.notes == []


def test_success_then_callback_keeps_single_paid_transition(client, store, gateway, order_factory) -> None:
    order = store.add(order_factory())
    client.get("/Plugins/PaymentOxipay/Success", params=_return_params(order), follow_redirects=False)
    paid_at = order.paid_at
    body = f"x_reference={order.order_guid}&x_result=completed&x_gateway_reference=PN-42"
    client.post("/Plugins/PaymentOxipay/Callback", content=body.encode("ascii"))

    assert order.payment_status == PaymentStatus.PAID
    assert order.paid_at == paid_at
    assert [n.note for n in order.notes] == ["Oxipay order ID: PN-42"]


def test_cancel_order_cancels_latest(client, store, order_factory) -> None:
    now = datetime.now(timezone.utc)
    older = store.add(order_factory(customer_id=7, created_at=now - timedelta(days=2)))
    latest = store.add(order_factory(customer_id=7, created_at=now - timedelta(minutes=1)))
    resp = client.get(
        "/Plugins/PaymentOxipay/CancelOrder", headers=_storefront("7"), follow_redirects=False
    )

    assert resp.status_code == 303
    assert resp.headers["location"] == f"https://shop.example.com/orderdetails/{latest.id}"
    assert latest.order_status == OrderStatus.CANCELLED
    assert older.order_status == OrderStatus.PENDING


def test_cancel_order_without_orders_goes_home(client, store) -> None:
    resp = client.get(
        "/Plugins/PaymentOxipay/CancelOrder", headers=_storefront("99"), follow_redirects=False
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "https://shop.example.com/"


def test_cancel_order_without_customer_goes_home(client, store) -> None:
    resp = client.get("/Plugins/PaymentOxipay/CancelOrder", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "https://shop.example.com/"


def test_cancel_order_already_cancelled(client, store, order_factory) -> None:
    order = store.add(order_factory(customer_id=7, order_status=OrderStatus.CANCELLED))
    resp = client.get(
        "/Plugins/PaymentOxipay/CancelOrder", headers=_storefront("7"), follow_redirects=False
    )
    assert resp.headers["location"] == f"https://shop.example.com/orderdetails/{order.id}"
    assert order.order_status == OrderStatus.CANCELLED


def test_order_summary(client, store, auth_headers, order_factory) -> None:
    order = store.add(order_factory())
    client.get("/Plugins/PaymentOxipay/Success", params=_return_params(order), follow_redirects=False)
    resp = client.get(f"/api/orders/{order.order_guid}", headers=auth_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["payment_status"] == "paid"
    assert body["notes"][0]["note"] == "Oxipay order ID: PN-42"


def test_availability(client, store, auth_headers, monkeypatch) -> None:
    from decimal import Decimal

    from oxipay_adapter.config import settings

    monkeypatch.setattr(settings, "oxipay_minimum_order_total", Decimal("50"))
    monkeypatch.setattr(settings, "oxipay_maximum_order_total", Decimal("0"))
    low = client.get("/api/payments/availability", params={"total": "20"}, headers=auth_headers)
    high = client.get("/api/payments/availability", params={"total": "200"}, headers=auth_headers)
    assert low.json() == {"hidden": True}
    assert high.json() == {"hidden": False}


def test_health(client) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["configured"] is True
    assert body["gateway"] == "https://securesandbox.oxipay.com.au/Checkout?platform=Default"


def test_success_with_non_ascii_signature_still_reaches_order(client, store, order_factory) -> None:
    order = store.add(order_factory())
    params = _return_params(order)
    params["x_signature"] = "é"
    resp = client.get("/Plugins/PaymentOxipay/Success", params=params, follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == f"https://shop.example.com/checkout/completed/{order.id}"
    assert order.payment_status == PaymentStatus.PENDING


def test_cancel_order_ignores_unauthenticated_customer_header(client, store, order_factory) -> None:
    order = store.add(order_factory(customer_id=99))
    for headers in ({"X-Customer-Id": "99"}, {"X-Customer-Id": "99", "X-Storefront-Token": "guess"}):
        resp = client.get("/Plugins/PaymentOxipay/CancelOrder", headers=headers, follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "https://shop.example.com/"
    assert order.order_status == OrderStatus.PENDING


def test_cancel_order_never_cancels_paid_order(client, store, order_factory) -> None:
    order = store.add(
        order_factory(customer_id=99, payment_status=PaymentStatus.PAID, order_status=OrderStatus.PROCESSING)
    )
    resp = client.get("/Plugins/PaymentOxipay/CancelOrder", headers=_storefront("99"), follow_redirects=False)

    assert resp.status_code == 303
    assert order.order_status == OrderStatus.PROCESSING
    assert order.payment_status == PaymentStatus.PAID


def test_cancel_order_with_malformed_customer_goes_home(client, store) -> None:
    resp = client.get("/Plugins/PaymentOxipay/CancelOrder", headers=_storefront("abc"), follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "https://shop.example.com/"


def test_docs_require_basic_auth(client, monkeypatch) -> None:
    from oxipay_adapter.config import settings

    monkeypatch.setattr(settings, "api_basic_username", "ops")
    monkeypatch.setattr(settings, "api_basic_password", "s3cret-docs")
    assert client.get("/openapi.json").status_code == 401
    assert client.get("/openapi.json", auth=("ops", "wrong")).status_code == 401
    resp = client.get("/openapi.json", auth=("ops", "s3cret-docs"))
    assert resp.status_code == 200
    assert resp.json()["info"]["title"].startswith("Oxipay payments for")
