"""DishLedger FastAPI application.

Single-domain web server that processes inventory commands synchronously via
HTTP. Every request runs inside the inventory domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from inventory.domain import inventory
from inventory.utils.logging import add_context, clear_context

# Initialized once at import; PROTEAN_ENV picks the overlay in domain.toml
# (sync projections under "test", the Engine under "production").
inventory.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="DishLedger API",
    description="Rental dishware inventory: stock ledger, allocations and physical audits",
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
    """Push the inventory domain context and tag log lines with a request id."""
    clear_context()
    add_context(request_id=request.headers.get("X-Request-ID") or str(uuid4()), path=request.url.path)
    try:
        with inventory.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from inventory.api import (  # noqa: E402
    allocation_router,
    audit_router,
    item_router,
    register_inventory_exception_handlers,
    staff_router,
)

app.include_router(item_router)
app.include_router(allocation_router)
app.include_router(audit_router)
app.include_router(staff_router)

register_inventory_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": inventory.name})
