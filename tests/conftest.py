"""Pytest fixtures for shop tests."""

import os
import tempfile

# must be set before anything from shop is imported
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(tempfile.mkdtemp(), 'shop.db')}"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from shop.api import create_app
from shop.api.deps import get_lock_service
from shop.data.database import get_db, init_db, make_engine, transaction
from shop.data.models.product import ProductModel
from shop.repos.product_repo import ProductRepo
from shop.services.cart_service import CartService
from shop.services.lock_service import LockService
from shop.services.order_service import OrderService


class InMemoryRedis:
    """Just enough of the redis client for LockService: SET NX and the release script."""

    def __init__(self):
        self.store = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.store:
            return None
        self.store[name] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    return InMemoryRedis()


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


@pytest.fixture
def cart_service(db, lock_service):
    return CartService(db=db, lock_service=lock_service)


@pytest.fixture
def order_service(db, lock_service):
    return OrderService(db, lock_service)


@pytest.fixture
def make_product(db):
    """Create a product and return its id."""

    def _make(name="Phone", price="10.00", stock=10):
        with transaction(db):
            product = ProductRepo(db).create_product(
                ProductModel(name=name, price=Decimal(price), stock=stock)
            )
        return product.id

    return _make


@pytest.fixture
def get_product(db):
    def _get(product_id):
        return ProductRepo(db).get_product(product_id)

    return _get


@pytest.fixture
def set_stock(db):
    """Change stock behind the services' back, keeping in_stock consistent."""

    def _set(product_id, stock, price=None):
        values = {"stock": stock, "in_stock": stock > 0}
        if price is not None:
            values["price"] = Decimal(price)
        with transaction(db):
            db.execute(update(ProductModel).where(ProductModel.id == product_id).values(**values))

    return _set


@pytest.fixture
def client(session_factory, lock_service):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service

    with TestClient(app) as test_client:
        yield test_client
