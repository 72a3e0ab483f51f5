from __future__ import annotations

from fastapi import HTTPException, status

from oxipay_adapter.config import settings
from oxipay_adapter.domain.errors import ConfigurationError, OrderNotFoundError, RefundReferenceError
from oxipay_adapter.repositories.factory import get_order_store
from oxipay_adapter.services.payments_service import PaymentsService

store = get_order_store(settings)
service = PaymentsService(store, settings)


def http_error(exc: ValueError) -> HTTPException:
    """Map business errors onto HTTP status codes."""
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    if isinstance(exc, OrderNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, RefundReferenceError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
