import os

# Before any shop_service import builds settings or the module-level app
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient

from shop_service.config import Settings
from shop_service.db.database import Database
from shop_service.main import create_app
from shop_service.models.product import Category, Product
from shop_service.models.schemas import UserCreate
from shop_service.models.user import RoleName
from shop_service.services.auth import create_access_token
from shop_service.services.role_service import RoleService
from shop_service.services.user_service import UserService

PASSWORD = "secret123"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        otel_enabled=False,
        log_format="text",
        jwt_secret="test-secret",
        super_admin_email=None,
    )


@pytest.fixture
def database():
    database = Database("sqlite://")
    database.create_tables()
    session = database.session()
    RoleService.seed_default_roles(session)
    session.close()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def client(settings, database):
    with TestClient(create_app(settings, database)) as client:
        yield client


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def factory(role: RoleName = None, email: str = None):
        counter["n"] += 1
        user = UserService.create_user(db, UserCreate(
            email=email or f"user{counter['n']}@example.com",
            password=PASSWORD,
            first_name="Test",
            last_name=f"User{counter['n']}",
        ))
        if role is not None and role != RoleName.USER:
            RoleService._upsert(db, user.id, RoleService._get_role_row(db, role))
            db.commit()
            db.expire_all()
        return user

    return factory


@pytest.fixture
def category(db):
    category = Category(name="Electronics", description="Gadgets")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def make_product(db, category):
    def factory(title: str = "Widget", price: float = 10.0, stock: int = 5, **kwargs):
        product = Product(category_id=category.id, title=title, price=price, stock=stock, **kwargs)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return factory


@pytest.fixture
def auth_headers(settings):
    def build(user):
        token = create_access_token({"sub": str(user.id), "email": user.email}, settings.jwt_secret)
        return {"Authorization": f"Bearer {token}"}

    return build
