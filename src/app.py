"""ShipStream FastAPI application.

Web server for the shipping domain. Commands and shipment operations run
synchronously inside the request; each request is wrapped in the shipping
domain context based on URL prefix.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from src/shipping/domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shipping.domain import shipping
from shipping.utils.logging import bind_tenant, clear_context, configure_logging

configure_logging()
shipping.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/orders": shipping,
    "/courier-accounts": shipping,
    "/shipments": shipping,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="ShipStream API",
    description="Shipment lifecycle and courier integration",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the shipping domain context and tag log lines with the tenant."""
    domain = _resolve_domain(request.url.path)
    if domain is None:
        # Health check, docs, etc.
        return await call_next(request)

    bind_tenant(request.headers.get("x-tenant-id", "-"), path=request.url.path)
    try:
        with domain.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from shipping.api import (  # noqa: E402
    courier_account_router,
    order_router,
    register_shipping_error_handlers,
    shipment_router,
)

app.include_router(order_router)
app.include_router(courier_account_router)
app.include_router(shipment_router)
register_shipping_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "shipping": {"name": shipping.name},
            },
        }
    )
