"""FastAPI application entry point."""

import logging
import threading

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from report_engine.bootstrap import build_engine, configure_logging
from report_engine.config import settings
from report_engine.routes import reports

configure_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Report Engine",
    description="AI report generation, caching and versioning",
    version="0.1.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reports.router)

# Worker thread management
worker_thread = None
worker_stop_event = threading.Event()


def run_worker_loop(engine):
    """Run the worker loop in a background thread."""
    from report_engine.worker import worker_loop

    logger.info("Starting background worker thread")
    worker_loop(engine, worker_stop_event)


@app.on_event("startup")
async def startup_event():
    """Build the engine and optionally start the embedded worker."""
    global worker_thread
    logger.info("Starting application...")

    # Tests install their own engine before startup
    if getattr(app.state, "engine", None) is None:
        app.state.engine = build_engine()

    if settings.RUN_EMBEDDED_WORKER:
        worker_stop_event.clear()
        worker_thread = threading.Thread(target=run_worker_loop, args=(app.state.engine,), daemon=True)
        worker_thread.start()
        logger.info("Background worker thread started")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the background worker when the app shuts down."""
    global worker_thread
    logger.info("Shutting down application...")

    worker_stop_event.set()

    if worker_thread and worker_thread.is_alive():
        worker_thread.join(timeout=10)
        logger.info("Background worker thread stopped")

    engine = getattr(app.state, "engine", None)
    if engine is not None:
        engine.close()


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
