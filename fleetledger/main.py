"""FleetLedger FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from fleetledger.api import invoices, ledgers, payments, vehicles  # noqa: E402
from fleetledger.api.errors import register_error_handlers  # noqa: E402
from fleetledger.models import Base  # noqa: E402
from fleetledger.services import engine  # noqa: E402
from fleetledger.services.config import settings  # noqa: E402
from fleetledger.services.logging import setup_server_logging  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup: Initialize database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Vehicle fleet leasing ledger and billing engine",
    version=settings.api_version,
    lifespan=lifespan,
)

register_error_handlers(app)

# Include routers
app.include_router(ledgers.attendance_router)
app.include_router(ledgers.maintenance_router)
app.include_router(payments.router)
app.include_router(invoices.router)
app.include_router(invoices.projects_router)
app.include_router(vehicles.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    setup_server_logging(settings.log_file, settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
