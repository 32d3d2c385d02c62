"""
TrustMeds inventory ledger backend.

ARCHITECTURE:
- InventoryStore: in-memory source of truth for stock (per-medicine locks)
- Services: FEFO allocation, atomic checkout, returns/adjustments, reporting
- SQL database: persistence collaborator, written after each commit
- Interaction advisor: optional external LLM check, fail-open

Checkout is all-or-nothing: a cart that cannot be fully allocated changes
no stock and creates no invoice.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trustmeds.api.routes import analytics, catalog, sales, stock
from trustmeds.core.config import settings
from trustmeds.core.exceptions import InventoryError, to_http_exception
from trustmeds.db.init_db import init_db
from trustmeds.db.session import SessionLocal
from trustmeds.services.advisory_service import InteractionAdvisor
from trustmeds.services.persistence_service import DatabaseListener, load_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    1. Initialize database tables (and demo catalog in development)
    2. Load the catalog and history into a fresh InventoryStore
    3. Attach the database listener and the interaction advisor

    Shutdown:
    1. Detach listeners and drop the store
    """
    logger.info("Initializing database...")
    init_db()
    db = SessionLocal()
    try:
        store = load_store(db)
    finally:
        db.close()
    store.add_listener(DatabaseListener(store, SessionLocal))
    app.state.store = store
    app.state.advisor = InteractionAdvisor()
    logger.info("Inventory store loaded")

    yield

    store.close()
    logger.info("Inventory store shut down")


app = FastAPI(
    title="TrustMeds Inventory Ledger API",
    description="Batch ledger, FEFO checkout, returns and dashboard projections.",
    version="0.1.0",
    lifespan=lifespan,
)

# Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,
    expose_headers=["Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    http_exc = to_http_exception(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
app.include_router(sales.router, prefix="/sales", tags=["sales"])
app.include_router(stock.router, prefix="/stock", tags=["stock"])
app.include_router(analytics.router, prefix="/analytics", tags=["analytics"])


@app.get("/health")
def health():
    return {"status": "ok"}
