from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from app.api.endpoints import (
    health,
    wallet,
)
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.db.session import create_db_engine, create_session_factory

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # storage client: built once per process, handed to handlers through get_db
    engine = create_db_engine(settings.DATABASE_URL, settings.STORE_TIMEOUT_SECONDS)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    logger.info("storage engine ready (%s)", engine.url.get_backend_name())
    try:
        yield
    finally:
        engine.dispose()


# Define the FastAPI application instance
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS middleware, answers OPTIONS preflight before any auth dependency runs
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

register_exception_handlers(app)

# Include your API routers
app.include_router(health.router)
app.include_router(wallet.router, prefix="/wallets")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        ssl_keyfile=settings.SSL_KEY,
        ssl_certfile=settings.SSL_CERT,
        reload=settings.DEBUG
    )
