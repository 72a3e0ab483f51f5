from __future__ import annotations

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse

from oxipay_adapter.config import settings
from oxipay_adapter.logging import setup_logging
from oxipay_adapter.routes import health, payments, plugin
from oxipay_adapter.utils.security import require_basic_auth

setup_logging()

DOCS_TITLE = f"Oxipay payments for {settings.store_name}"

app = FastAPI(
    title=DOCS_TITLE,
    description="Hosted checkout redirect, gateway notifications and refunds for Oxipay.",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)
# only the merchant back office calls this service cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.store_url.rstrip("/")],
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)
app.include_router(health.router)
app.include_router(plugin.router)
app.include_router(payments.router)


@app.get("/openapi.json", include_in_schema=False)
def oxipay_openapi(_: None = Depends(require_basic_auth)):
    return JSONResponse(content=app.openapi())


@app.get("/docs", include_in_schema=False)
def oxipay_swagger_ui(_: None = Depends(require_basic_auth)):
    return get_swagger_ui_html(openapi_url="/openapi.json", title=DOCS_TITLE)


@app.get("/redoc", include_in_schema=False)
def oxipay_redoc(_: None = Depends(require_basic_auth)):
    return get_redoc_html(openapi_url="/openapi.json", title=f"{DOCS_TITLE} (ReDoc)")
