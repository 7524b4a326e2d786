# spabook/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from spabook.core.config import settings
from spabook.core.exceptions import SpaError
from spabook.core.logging import setup_logging
from spabook.db.sql import engine, init_db
from spabook.modules.realtime.hub import get_hub
from spabook.routers import admin, appointments, auth, dev, functions, health, procedures, realtime

logger = logging.getLogger(__name__)


# Define lifespan event
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    The lifespan function is used to manage the FastAPI application lifecycle.
    """
    setup_logging()
    # Initialize database (create tables if they don't exist)
    await init_db()
    logger.info("%s API started (%s)", settings.SPA_NAME, settings.APP_ENV)
    yield
    get_hub().close()
    await engine.dispose()


app = FastAPI(
    title=f"{settings.SPA_NAME} Booking API",
    lifespan=lifespan,
)


@app.exception_handler(SpaError)
async def spa_error_handler(request: Request, exc: SpaError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc.__cause__)
    else:
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.code})


# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(procedures.router, prefix=settings.API_PREFIX, tags=["procedures"])
app.include_router(appointments.router, prefix=settings.API_PREFIX, tags=["appointments"])
app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["admin"])
app.include_router(functions.router, prefix=settings.API_PREFIX, tags=["functions"])
app.include_router(realtime.router, prefix=settings.API_PREFIX, tags=["realtime"])
if settings.DEBUG:
    app.include_router(dev.router, prefix=settings.API_PREFIX, tags=["dev"])


@app.get("/")
def root():
    return {"message": f"{settings.SPA_NAME} API running successfully"}
