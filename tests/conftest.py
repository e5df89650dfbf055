from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.api import create_app
from app.data import models  # noqa: F401
from app.data.database import Base, build_engine, build_session_factory
from app.domain.cart import Cart
from app.repos.cart_repo import CartRepo
from app.services.cart_service import CartService


@pytest.fixture
def engine(tmp_path):
    """Plikowa baza SQLite na kazdy test (in-memory nie dzieli sie miedzy watkami)."""
    eng = build_engine(f"sqlite:///{tmp_path / 'carts.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def repo(session_factory):
    return CartRepo(session_factory)


@pytest.fixture
def service(repo):
    return CartService(repo)


@pytest.fixture
def new_cart(repo):
    """Fabryka pustych koszykow zapisanych w bazie."""

    def _make(user_id: int = 10) -> Cart:
        now = datetime.now(timezone.utc)
        return repo.create_cart(Cart(user_id=user_id, created_at=now, updated_at=now))

    return _make


@pytest.fixture
def test_client(engine):
    with TestClient(create_app(engine)) as client:
        yield client
