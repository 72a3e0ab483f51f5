from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from oxipay_adapter.domain.dtos import (
    AvailabilityResponse,
    CheckoutRequest,
    OrderNoteSummary,
    OrderSummary,
    RedirectInfo,
    RefundCreateRequest,
    RefundResponse,
)
from oxipay_adapter.domain.models import Order
from oxipay_adapter.utils.security import verify_bearer_token

from . import deps

router = APIRouter(prefix="/api", dependencies=[Depends(verify_bearer_token)])
logger = logging.getLogger(__name__)


def _order_to_summary(order: Order) -> OrderSummary:
    return OrderSummary(
        id=order.id,
        order_guid=order.order_guid,
        total=order.total,
        order_status=order.order_status,
        payment_status=order.payment_status,
        refunded_amount=order.refunded_amount,
        notes=[OrderNoteSummary(note=n.note, created_at=n.created_at) for n in order.notes],
    )


@router.post("/payments/checkout", response_model=RedirectInfo)
async def create_checkout(request: CheckoutRequest) -> RedirectInfo:
    logger.info(
        "checkout received",
        extra={"endpoint": "/api/payments/checkout", "method": "POST", "order_guid": request.order_guid},
    )
    try:
        payload = deps.service.start_checkout(request.order_guid, repost=request.repost)
    except ValueError as exc:
        raise deps.http_error(exc) from exc
    return RedirectInfo(url=payload.url, method=payload.method, form_fields=payload.fields)


@router.post("/payments/refund", response_model=RefundResponse)
async def refund_payment(req: RefundCreateRequest) -> RefundResponse:
    logger.info(
        "refund received",
        extra={
            "endpoint": "/api/payments/refund",
            "method": "POST",
            "order_guid": req.order_guid,
            "amount": req.amount,
        },
    )
    try:
        result = await deps.service.refund(req.order_guid, req.amount)
    except ValueError as exc:
        raise deps.http_error(exc) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Oxipay refund request failed: {exc}"
        ) from exc
    order = deps.service.get_order(req.order_guid)
    return RefundResponse(
        ok=result.ok,
        payment_status=order.payment_status,
        amount=result.amount if result.amount is not None else Decimal("0"),
        error=result.error,
    )


@router.get("/payments/availability", response_model=AvailabilityResponse)
async def availability(total: Decimal = Query(..., description="Cart total")) -> AvailabilityResponse:
    return AvailabilityResponse(hidden=deps.service.method.hide_payment_method(total))


@router.get("/orders/{order_guid}", response_model=OrderSummary)
async def get_order(order_guid: UUID) -> OrderSummary:
    try:
        order = deps.service.get_order(order_guid)
    except ValueError as exc:
        raise deps.http_error(exc) from exc
    return _order_to_summary(order)
