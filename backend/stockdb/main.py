# backend/stockdb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .apps.audit.router import router as audit_router
from .apps.inventory.router import router as inventory_router
from .apps.withdrawals.errors import (
    NotDeletable,
    PersistenceFailure,
    PreconditionFailed,
    ValidationError,
    WithdrawalError,
    WithdrawalNotFound,
)
from .apps.withdrawals.router import router as withdrawals_router

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: 422,
    PreconditionFailed: 409,
    WithdrawalNotFound: 404,
    NotDeletable: 409,
    PersistenceFailure: 500,
}


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
        "http://localhost:5173",
    ]


app = FastAPI(title="Stock Withdrawal API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WithdrawalError)
async def withdrawal_error_handler(request: Request, exc: WithdrawalError):
    status_code = ERROR_STATUS_CODES.get(type(exc), 400)
    if status_code >= 500:
        logger.error("Withdrawal operation failed", extra={"path": request.url.path, "code": exc.code})
    return JSONResponse(status_code=status_code, content={"code": exc.code, "errors": exc.detail})


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Stock withdrawal backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(inventory_router)
app.include_router(withdrawals_router)
app.include_router(audit_router)
