# app/api/__init__.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from app.api.routers import carts, health, metrics
from app.data.database import Base, build_session_factory, wait_for_database
from app.repos.cart_repo import CartRepo
from app.services.cart_service import CartService
from app.utils.logging import get_logger
from app.utils.metrics import track_requests

# rejestracja modeli w Base.metadata przed create_all
from app.data import models  # noqa: F401

logger = get_logger(__name__)


def create_app(engine: Engine) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        wait_for_database(engine)
        Base.metadata.create_all(bind=engine)
        logger.info(f"Tables ready: {list(Base.metadata.tables.keys())}")
        yield
        engine.dispose()

    app = FastAPI(title="Cart Service", version="1.0.0", lifespan=lifespan)

    app.state.engine = engine
    app.state.cart_service = CartService(CartRepo(build_session_factory(engine)))

    app.middleware("http")(track_requests)

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(carts.router)
    return app
