# marketplace/main.py

import logging
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from marketplace import models  # noqa: F401  registers every table on Base.metadata
from marketplace.core.config import get_settings
from marketplace.core.exceptions import BaseServiceError
from marketplace.core.logging_config import configure_logging
from marketplace.routes import cart, delivery, health, notifications, orders, products, seller

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    # Run migrations on startup
    if settings.RUN_MIGRATIONS:
        logger.info("Running database migrations...")
        result = subprocess.run(['alembic', 'upgrade', 'head'], capture_output=True, text=True)
        if result.returncode == 0:
            logger.info("Migrations completed successfully")
        else:
            logger.error(f"Migration failed: {result.stderr}")

    logger.info(f"Marketplace order core started ({settings.ENVIRONMENT})")
    yield
    logger.info("Marketplace order core stopped")


app = FastAPI(
    title="Marketplace Order Core",
    lifespan=lifespan
)


@app.exception_handler(BaseServiceError)
async def service_error_handler(request: Request, exc: BaseServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message}
    )


app.include_router(health.router)  # Health check should be accessible without identity
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(seller.router)
app.include_router(delivery.router)
app.include_router(notifications.router)
