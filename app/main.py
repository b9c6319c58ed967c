from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from app.api.sessions import router as sessions_router
from app.config.settings import settings
from app.core.logger import setup_logger
from app.db.models import Base
from app.db.session import check_database_connection, get_engine

setup_logger(level=settings.log_level, log_file=settings.log_file or None)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Check the database and create the workout and plan tables if missing."""
    check_database_connection()
    Base.metadata.create_all(bind=get_engine())
    logger.info("[STARTUP] Session tables ready")
    yield


app = FastAPI(title="Training Log API", lifespan=lifespan)
app.include_router(sessions_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
    return response
