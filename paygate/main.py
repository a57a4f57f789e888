"""
Main FastAPI application for paygate.
Serves health, the workflow trigger, the transaction builder and metrics.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paygate.core.config import settings
from paygate.core.errors import PaygateError
from paygate.core.logging import configure_logging
from paygate.api.routes import health, transactions, workflow
from paygate.db.session import init_db
from paygate.utils.metrics import router as metrics_router

logger = logging.getLogger(__name__)

configure_logging()

app = FastAPI(
    title="paygate",
    description="Ledger-verified micropayment gate for premium features",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup() -> None:
    init_db()


@app.exception_handler(PaygateError)
def paygate_error_handler(request: Request, exc: PaygateError) -> JSONResponse:
    """Permanent errors are the caller's to fix (400); ledger trouble is upstream (502)."""
    status_code = 400 if exc.permanent else 502
    logger.warning(
        "request_failed",
        extra={"path": request.url.path, "failure_kind": exc.kind.value, "error": str(exc)},
    )
    return JSONResponse(
        {"error": str(exc), "failure_kind": exc.kind.value},
        status_code=status_code,
    )


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(workflow.router)
app.include_router(transactions.router)
app.include_router(metrics_router)
