# zomatify/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from zomatify.api import http_error_handler, include_routers
from zomatify.data.database import Base, engine
from zomatify.utils import settings
from zomatify.utils.logging import get_logger

# models have to be imported before create_all
from zomatify.data.models import OrderModel, VendorSettingsModel  # noqa: F401

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Initializing database, tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info(f"Zomatify backend ready, environment: {settings.ENVIRONMENT}")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Zomatify API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    include_routers(app)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("zomatify.main:app", host="0.0.0.0", port=settings.PORT)
