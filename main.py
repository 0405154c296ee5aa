"""
Main entry point for the options ledger API
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from bitacora.core.config import settings
from bitacora.core.database import init_db
from bitacora.api.routes import api_router
from bitacora.services.history import HistoryLog
from bitacora.services.ledger_service import LedgerService
from bitacora.services.price_service import PriceService
from bitacora.services.storage import create_stores

Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(settings.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting options ledger...")

    if settings.STORAGE_BACKEND == "sql":
        init_db()

    trade_store, event_store = create_stores(settings)
    app.state.ledger = LedgerService(trade_store, HistoryLog(event_store))
    app.state.price_service = PriceService.from_settings(settings)
    if not settings.price_lookup_active():
        logger.info("Price lookups disabled; quotes will be reported as unavailable")

    logger.info("Options ledger started successfully!")

    yield

    # Cleanup
    logger.info("Shutting down options ledger...")
    await app.state.price_service.close()
    logger.info("Options ledger stopped.")

# Create FastAPI app
app = FastAPI(
    title="Options Ledger",
    description="Personal ledger of option trades with ROI tracking",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Options Ledger API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "storage_backend": settings.STORAGE_BACKEND,
        "ledger": getattr(app.state, "ledger", None) is not None,
        "price_lookup": settings.price_lookup_active(),
    }

def main():
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level=settings.LOG_LEVEL.lower()
    )

if __name__ == "__main__":
    main()
