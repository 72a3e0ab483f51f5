from __future__ import annotations

import logging
import secrets

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)

from oxipay_adapter.config import settings

logger = logging.getLogger(__name__)

_basic_scheme = HTTPBasic(realm="Oxipay adapter docs")
_bearer_scheme = HTTPBearer(auto_error=False, scheme_name="MerchantToken")


def _matches(given: str | None, expected: str) -> bool:
    """Constant-time comparison that tolerates non-ASCII input."""
    if not given or not expected:
        return False
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def require_basic_auth(credentials: HTTPBasicCredentials = Depends(_basic_scheme)) -> None:
    """Guard the OpenAPI docs with the operator's basic-auth credentials."""

    username_valid = _matches(credentials.username, settings.api_basic_username)
    password_valid = _matches(credentials.password, settings.api_basic_password)
    if not (username_valid and password_valid):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid documentation credentials",
            headers={"WWW-Authenticate": "Basic"},
        )


def verify_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer_scheme),
) -> None:
    """Only the merchant back office may call the payments API."""

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing merchant API token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not _matches(credentials.credentials.strip(), settings.api_bearer_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid merchant API token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def storefront_customer_id(
    customer_id: str | None = Header(default=None, alias="X-Customer-Id"),
    storefront_token: str | None = Header(default=None, alias="X-Storefront-Token"),
) -> int | None:
    """Shopper id asserted by the storefront proxy.

    The id is trusted only when the request also carries the shared
    storefront token. Anything else yields ``None`` rather than an error,
    since the shopper must always be redirected.
    """
    if customer_id is None:
        return None
    if not _matches((storefront_token or "").strip(), settings.storefront_token):
        logger.warning("customer id rejected: storefront token mismatch", extra={"event": "cancel_order"})
        return None
    try:
        return int(customer_id.strip())
    except ValueError:
        return None
