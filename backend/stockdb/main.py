# backend/stockdb/main.py
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .errors import register_exception_handlers
from .apps.events.router import router as events_router
from .apps.inventory.router import router as inventory_router
from .apps.locations.router import router as locations_router
from .apps.reports.router import router as reports_router
from .apps.transfers.router import router as transfers_router


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
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]


app = FastAPI(title="Stock Ledger API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Stock ledger backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


# Reports first: /inventory/items/low-stock must match before /inventory/items/{item_id}.
app.include_router(reports_router)
app.include_router(inventory_router)
app.include_router(locations_router)
app.include_router(transfers_router)
app.include_router(events_router)
