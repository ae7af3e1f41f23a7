import os
from decimal import Decimal

# Settings are read at import time; keep the app off the developer database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import Base, get_db, make_engine
from main import app
from models.category import Category
from models.product import Product
from models.users import User, UserRole
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

PASSWORD = "secret123"


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, role=UserRole.USER.value, name="Test User"):
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            password_hash=get_password_hash(PASSWORD),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user(email="alice@example.com", name="Alice")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role=UserRole.ADMIN.value, name="Admin")


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def category(db):
    category = Category(name="Phones", description="Mobile phones")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def make_product(db, category):
    def _make(name="Galaxy S23", price="100.00", stock=10, category_id=None):
        product = Product(
            name=name,
            description=f"{name} description",
            price=Decimal(price),
            stock_quantity=stock,
            category_id=category_id or category.id,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


def reload(db, obj):
    """Re-read a row written through the API by another session."""
    db.expire_all()
    return db.get(type(obj), obj.id)
