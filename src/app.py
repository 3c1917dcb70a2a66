"""ShipStream FastAPI application.

Web server for the Shipping domain: courier webhooks, shipment lookups and
the NDR desk. Commands are processed synchronously per request.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - unset/"test" → event_processing = "sync"  (NDR handlers fire in UoW)
#   - "production" → event_processing = "async" (handlers fire via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from shipping.domain import shipping
from shipping.utils.logging import configure_logging

configure_logging()
shipping.init()

_DOMAIN_PREFIXES = ("/webhooks", "/shipments", "/ndr-cases")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="ShipStream API",
    description="Courier integration, shipment tracking and NDR management",
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
    """Push the Shipping domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with shipping.domain_context():
            return await call_next(request)
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from shipping.api import ndr_router, shipment_router, webhook_router  # noqa: E402

app.include_router(webhook_router)
app.include_router(shipment_router)
app.include_router(ndr_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domains": {"shipping": {"name": shipping.name}}})
