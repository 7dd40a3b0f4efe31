"""HTTP mapping for inventory rule violations.

Protean's handlers turn ``ValidationError`` into 400 and missing objects into
404. The subclasses raised by the ledger get their own status codes;
Starlette resolves handlers along the exception's MRO, so these win over
the generic one.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from inventory.errors import (
    AuthorizationError,
    ConflictError,
    InsufficientStockError,
    OverReturnError,
    StateError,
)

STATUS_CODES = {
    AuthorizationError: 403,
    ConflictError: 409,
    StateError: 409,
    InsufficientStockError: 409,
    OverReturnError: 409,
}


def _handler(status_code):
    async def handle(request: Request, exc) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"error": exc.messages})

    return handle


def register_inventory_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    for exc_class, status_code in STATUS_CODES.items():
        app.add_exception_handler(exc_class, _handler(status_code))
