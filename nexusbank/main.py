# main.py
# FastAPI application: routers, middleware, error handlers and startup.

import logging
import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .auth_service import AuthService
from .config import settings
from .database import Base, SessionLocal, engine
from .exceptions import BankingError, StoreOperationFailed
from .logging_config import setup_logging
from .routers import admin, admin_transfers, auth, cards, customer, notifications, recipients, transfers

setup_logging()
log = logging.getLogger(__name__)

app = FastAPI(title=f"{settings.INSTITUTION_NAME} API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    client = request.client.host if request.client else "-"
    log.info("%s %s from %s -> %s (%.1f ms)", request.method, request.url.path, client, response.status_code, elapsed_ms)
    return response


# -----------------------
#  ERROR HANDLERS
# -----------------------
@app.exception_handler(BankingError)
async def banking_error_handler(request: Request, exc: BankingError):
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.code)
    else:
        log.warning("%s %s refused: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    # Driver messages stay in the log, never in the response
    log.exception("Store error on %s %s", request.method, request.url.path)
    error = StoreOperationFailed()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# -----------------------
#  ROUTERS
# -----------------------
app.include_router(auth.router)
app.include_router(customer.router)
app.include_router(recipients.router)
app.include_router(transfers.router)
app.include_router(notifications.router)
app.include_router(cards.router)
app.include_router(admin.router)
app.include_router(admin_transfers.router)


@app.get("/api/health", tags=["health"])
async def health_check():
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        log.exception("Health check could not reach the database")
        database = "unavailable"
    return {"status": "ok" if database == "ok" else "degraded", "database": database}


# -----------------------
#  STARTUP
# -----------------------
async def create_db_and_tables():
    """Creates all database tables defined in models.py."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def create_admin_user():
    async with SessionLocal() as db:
        await AuthService.ensure_admin_user(db)


@app.on_event("startup")
async def startup_event():
    log.info("Starting %s API", settings.INSTITUTION_NAME)
    try:
        if settings.CREATE_TABLES_ON_STARTUP:
            await create_db_and_tables()
        await create_admin_user()
        log.info("Application ready")
    except SQLAlchemyError:
        log.exception("Startup database setup failed; continuing in limited mode")


if __name__ == "__main__":
    uvicorn.run("nexusbank.main:app", host="0.0.0.0", port=8000, reload=False)
