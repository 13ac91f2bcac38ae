import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from starlette.responses import Response

from unidocs.api.documents import router as documents_router
from unidocs.api.manage_documents import router as manage_documents_router
from unidocs.api.university_bodies import manage_router as manage_bodies_router
from unidocs.api.university_bodies import router as university_bodies_router
from unidocs.api.users import router as users_router
from unidocs.config import settings
from unidocs.db import SessionLocal
from unidocs.errors import register_error_handlers
from unidocs.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database is unreachable; refusing to start")
        raise
    finally:
        db.close()
    logger.info("%s API started", settings.brand_name)
    yield


app = FastAPI(title=f"{settings.brand_name} API", lifespan=lifespan)

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(documents_router)
_include_api_router(university_bodies_router)
_include_api_router(manage_documents_router)
_include_api_router(manage_bodies_router)
_include_api_router(users_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
