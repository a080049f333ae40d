from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.db.base import get_db
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.routers import admin as admin_router
from app.routers import clients as clients_router
from app.routers import justification as justification_router
from app.routers import okrs as okrs_router
from app.routers import reports as reports_router
from app.routers import tasks as tasks_router
from app.routers import tracking as tracking_router
from app.services.change_feed import ChangeFeed
from app.services.justification import SessionRegistry
from app.core.errors import (
    OpsException,
    ops_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    feed = ChangeFeed()
    feed.bind()
    app.state.change_feed = feed
    app.state.sessions = SessionRegistry(feed=feed, time_zone=settings.TIME_ZONE)
    try:
        yield
    finally:
        app.state.sessions.close()
        feed.unbind()


app = FastAPI(
    title="Ops Dashboard API",
    description=(
        "**Client lifecycle classification and delay tracking**\n\n"
        "Classifies clients from their label, tracks daily board movement and "
        "overdue tasks, walks users through justifying delays, and rolls the "
        "results up per manager.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(OpsException, ops_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(clients_router.router)
app.include_router(tracking_router.router)
app.include_router(tasks_router.router)
app.include_router(justification_router.router)
app.include_router(reports_router.router)
app.include_router(okrs_router.router)
app.include_router(admin_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
