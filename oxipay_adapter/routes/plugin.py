"""Endpoints reached by the shopper's browser and by Oxipay's servers.

None of these ever shows an error to the remote party: the shopper is
always redirected somewhere sensible and Oxipay always gets an empty 200.
"""

from __future__ import annotations

import logging
from html import escape
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from oxipay_adapter.config import settings
from oxipay_adapter.domain.models import Order
from oxipay_adapter.utils.security import storefront_customer_id

from . import deps

PLUGIN_PREFIX = "/Plugins/PaymentOxipay"

router = APIRouter(prefix=PLUGIN_PREFIX)
logger = logging.getLogger(__name__)


def _store_link(template: str = "", order: Order | None = None) -> str:
    path = template.format(order_id=order.id if order else "")
    return f"{settings.store_url}{path.lstrip('/')}"


@router.api_route("/Success", methods=["GET", "POST"])
async def success(request: Request) -> RedirectResponse:
    """Browser return from the hosted checkout."""
    params = dict(request.query_params)
    logger.info(
        "success received",
        extra={
            "endpoint": f"{PLUGIN_PREFIX}/Success",
            "method": request.method,
            "order_guid": params.get("x_reference", ""),
            "result": params.get("x_result", ""),
        },
    )
    order: Order | None = None
    try:
        order = deps.service.handle_return(params)
    except Exception:  # noqa: BLE001 - the shopper is redirected regardless
        logger.exception(
            "success handling error",
            extra={"endpoint": f"{PLUGIN_PREFIX}/Success", "order_guid": params.get("x_reference", "")},
        )
    if order is None:
        redirect_to = _store_link()
    else:
        redirect_to = _store_link(settings.checkout_completed_path, order)
    logger.info(
        "success redirecting",
        extra={"endpoint": f"{PLUGIN_PREFIX}/Success", "redirect_to": redirect_to},
    )
    return RedirectResponse(redirect_to, status_code=303)


@router.post("/Callback")
async def callback(request: Request) -> Response:
    """Server-to-server notification from Oxipay."""
    body = await request.body()
    try:
        await deps.service.handle_callback(body, request.headers.get("user-agent"))
    except Exception:  # noqa: BLE001 - keep 200 to avoid gateway retry storms
        logger.exception("callback handling error", extra={"endpoint": f"{PLUGIN_PREFIX}/Callback"})
    # nothing should be rendered to the caller
    return Response(content="", status_code=200)


@router.get("/CancelOrder")
async def cancel_order(customer_id: int | None = Depends(storefront_customer_id)) -> RedirectResponse:
    """Shopper abandoned the hosted checkout."""
    order: Order | None = None
    if customer_id is not None:
        try:
            order = deps.service.cancel_latest_order(customer_id)
        except Exception:  # noqa: BLE001 - the shopper is redirected regardless
            logger.exception("cancel handling error", extra={"endpoint": f"{PLUGIN_PREFIX}/CancelOrder"})
    if order is None:
        redirect_to = _store_link()
    else:
        redirect_to = _store_link(settings.order_details_path, order)
    logger.info(
        "cancel redirecting",
        extra={"endpoint": f"{PLUGIN_PREFIX}/CancelOrder", "redirect_to": redirect_to},
    )
    return RedirectResponse(redirect_to, status_code=303)


@router.get("/Redirect/{order_guid}", response_class=HTMLResponse)
async def redirect_to_gateway(order_guid: UUID, repost: bool = Query(False)) -> HTMLResponse:
    """Self-submitting form that posts the signed fields to the hosted checkout."""
    try:
        payload = deps.service.start_checkout(order_guid, repost=repost)
    except ValueError as exc:
        raise deps.http_error(exc) from exc
    inputs = "\n".join(
        f'    <input type="hidden" name="{escape(key)}" value="{escape(value)}" />'
        for key, value in payload.fields.items()
    )
    html = (
        "<!DOCTYPE html>\n<html>\n<body onload=\"document.forms['OxipayForm'].submit()\">\n"
        f'  <form name="OxipayForm" method="{payload.method}" action="{escape(payload.url)}">\n'
        f"{inputs}\n"
        "  </form>\n</body>\n</html>\n"
    )
    return HTMLResponse(content=html)
