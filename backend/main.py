"""
Battery Charger Monitor - Main FastAPI Application
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): Cleanup, history and Done & Clear endpoints; monitor
                      instance kept on app.state and injected into routes
v1.0.0 (2026-10-05): Initial FastAPI application
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from config import settings, init_directories
from api import samples, cycle, cleanup, history, admin, ws
from services.cycle_monitor import ChargeCycleMonitor
from services.history_store import HistoryStore

# Configure logging
os.makedirs(settings.LOGS_DIR, exist_ok=True)
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(f'{settings.LOGS_DIR}/api.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Create necessary directories
    init_directories()

    # Initialize database
    from models import init_db
    await init_db()

    # Start the charge cycle monitor
    logger.info("Starting charge cycle monitor...")
    store = HistoryStore()
    monitor = ChargeCycleMonitor(store)
    live_hub = ws.LiveHub()
    monitor.add_listener(live_hub.broadcast)

    app.state.monitor = monitor
    app.state.live_hub = live_hub
    await monitor.start()

    logger.info("All services started successfully")

    yield

    # Shutdown
    logger.info("Shutting down services...")
    await monitor.stop()
    app.state.monitor = None
    app.state.live_hub = None
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Battery charge cycle monitor: gated history logging, phase energy and retention",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(samples.router, prefix="/api/samples", tags=["Samples"])
app.include_router(cycle.router, prefix="/api/cycle", tags=["Cycle"])
app.include_router(cleanup.router, prefix="/api/cleanup", tags=["Cleanup"])
app.include_router(history.router, prefix="/api/history", tags=["History"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(ws.router, prefix="/api/ws", tags=["WebSocket"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "app": settings.APP_NAME
    }


@app.get("/api/status")
async def system_status():
    """Cycle status endpoint"""
    monitor = getattr(app.state, "monitor", None)
    if monitor is None:
        return {"running": False}
    return {"running": monitor.running, **monitor.get_status()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )
