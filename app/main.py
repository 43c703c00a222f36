"""FastAPI application entry point."""

import logging
import os
import threading

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.errors import PipelineError
from app.routes import scheduler, worker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="CRM AI Pipeline",
    description="Background job coordination for AI message processing",
    version="0.1.0",
)

# Unhandled errors become JSON 500s inside the CORS layer
@app.middleware("http")
async def unhandled_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"Unhandled error on {request.url.path}: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})


# CORS middleware (outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(scheduler.router)
app.include_router(worker.router)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in errors
    ) or "invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Ticker thread management
ticker_thread = None
ticker_stop_event = threading.Event()


def run_ticker_loop():
    """Run the scheduler ticker in a background thread."""
    from app.routes.scheduler import get_scheduler
    from app.scheduler import ticker_loop
    logger.info("Starting background ticker thread")
    ticker_loop(get_scheduler(), ticker_stop_event)


@app.on_event("startup")
async def startup_event():
    """Run migrations if needed and start the ticker when enabled."""
    global ticker_thread
    logger.info("Starting application...")

    from app.database import SessionLocal
    import sqlalchemy

    try:
        db = SessionLocal()
        # Check if the job store exists
        table_exists = sqlalchemy.inspect(db.get_bind()).has_table("processing_jobs")
        db.close()

        if table_exists:
            logger.info("Database tables already exist, skipping migrations")
        else:
            logger.info("Running database migrations...")
            from alembic import command
            from alembic.config import Config

            alembic_cfg = Config(os.path.join(os.path.dirname(os.path.dirname(__file__)), "alembic.ini"))
            command.upgrade(alembic_cfg, "head")
            logger.info("Database migrations completed successfully")
    except Exception as e:
        logger.error(f"Startup database check/migration error: {e}")
        logger.info("Continuing startup - assuming database is ready")

    if settings.ENABLE_TICKER:
        ticker_thread = threading.Thread(target=run_ticker_loop, daemon=True)
        ticker_thread.start()
        logger.info("Background ticker thread started")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the ticker when the app shuts down."""
    logger.info("Shutting down application...")

    ticker_stop_event.set()

    if ticker_thread and ticker_thread.is_alive():
        ticker_thread.join(timeout=10)
        logger.info("Background ticker thread stopped")


@app.options("/{path:path}", include_in_schema=False)
def preflight(path: str):
    """Answer OPTIONS requests with an empty response (CORS headers come from the middleware)."""
    return Response(status_code=200)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
