"""
app.py — FastAPI Application Factory
=======================================
Builds the custody node's HTTP app around already-constructed
collaborators and maps the node's errors onto status codes.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from custody_node.api.routes import router
from custody_node.core.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

ERROR_STATUS_CODES = {
    ValidationError: 400,
    AuthenticationError: 401,
    PermissionDeniedError: 403,
    NotFoundError: 404,
}


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app(
    ledger,
    bundle_store,
    worker_log_repository,
    token_authenticator,
    admin_address: str,
) -> FastAPI:
    """Create the app with its collaborators attached to `app.state`."""
    app = FastAPI(
        title="Custody Node",
        description=(
            "Storage network node that competes for custody "
            "challenges and shelters the bundles it wins."
        ),
        version="1.0.0",
    )
    app.state.ledger = ledger
    app.state.bundle_store = bundle_store
    app.state.worker_log_repository = worker_log_repository
    app.state.token_authenticator = token_authenticator
    app.state.admin_address = admin_address

    for error_cls, status_code in ERROR_STATUS_CODES.items():
        app.add_exception_handler(error_cls, _error_handler(status_code))

    app.include_router(router)
    return app
