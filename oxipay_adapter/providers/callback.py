from __future__ import annotations

import logging
import time
from urllib.parse import unquote_plus

import httpx

from oxipay_adapter.config import Settings

from .base import CallbackVerification
from .urls import checkout_url

logger = logging.getLogger(__name__)

CONFIRMATION_TOKEN = "VERIFIED"


def parse_notification(body: str) -> dict[str, str]:
    """Split an ``&``-joined notification body into fields.

    Only the first ``=`` separates key from value and values are kept as
    received. Keys are matched case-insensitively; the first occurrence of a
    key wins.
    """
    values: dict[str, str] = {}
    for chunk in body.split("&"):
        line = chunk.strip()
        pos = line.find("=")
        if pos < 0:
            continue
        key = line[:pos].lower()
        if key in values:
            logger.warning("duplicate notification field ignored", extra={"event": key})
            continue
        values[key] = line[pos + 1:]
    return values


class CallbackVerifier:
    """Confirms an inbound notification by echoing it back to Oxipay.

    The callback endpoint is reachable by anyone, so a notification is only
    trusted once Oxipay answers the echo with the confirmation token. Any
    other answer, HTTP error or transport failure rejects it.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    async def verify(self, raw_body: bytes, user_agent: str | None = None) -> CallbackVerification:
        body = raw_body.decode("ascii", errors="replace")
        fields = parse_notification(body)
        reference = fields.get("x_reference", "")
        result = fields.get("x_result", "")
        # Only the reference and result are echoed back
        form_content = f"x_reference={reference}&x_result={result}"
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if user_agent:
            headers["User-Agent"] = user_agent
        url = checkout_url(self.settings)
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.settings.oxipay_http_timeout_seconds) as client:
                resp = await client.post(url, headers=headers, content=form_content.encode("ascii", errors="replace"))
        except httpx.HTTPError as exc:
            latency_ms = int((time.monotonic() - started) * 1000)
            logger.warning(
                "callback verification request failed",
                extra={"order_guid": reference, "result": result, "event": str(exc), "latency_ms": latency_ms},
            )
            return CallbackVerification(accepted=False, fields=fields, error=str(exc))

        latency_ms = int((time.monotonic() - started) * 1000)
        if resp.status_code >= 400:
            logger.warning(
                "callback verification rejected",
                extra={"order_guid": reference, "result": result, "response_code": resp.status_code, "latency_ms": latency_ms},
            )
            return CallbackVerification(
                accepted=False, fields=fields, error=f"Verification returned {resp.status_code}"
            )

        answer = unquote_plus(resp.text or "").strip()
        accepted = answer.upper() == CONFIRMATION_TOKEN
        if not accepted:
            logger.warning(
                "callback not verified by gateway",
                extra={"order_guid": reference, "result": result, "response_code": resp.status_code, "event": answer[:64]},
            )
            return CallbackVerification(accepted=False, fields=fields, error="Notification not verified")
        logger.info(
            "callback verified",
            extra={"order_guid": reference, "result": result, "latency_ms": latency_ms},
        )
        return CallbackVerification(accepted=True, fields=fields)
