import os

# Keep the application engine off PostgreSQL during tests
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from minimarket.core import Base
from minimarket.core.database import build_engine
from minimarket.models import AppUser, Product
from minimarket.schemas import PurchaseCreate
from minimarket.services import StockService


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


def make_user(db, email="cashier@minimarket.cl", active=True, role="cashier"):
    user = AppUser(email=email, full_name="Test Cashier", role=role, is_active=active)
    db.add(user)
    db.commit()
    return user


def make_product(db, name="Leche Entera 1L", price=1000, sku=None):
    product = Product(sku=sku or name.upper().replace(" ", "-"), name=name, price=Decimal(price), cost=Decimal(price // 2))
    db.add(product)
    db.commit()
    return product


def stock_up(db, product, quantity, user, document_number="F-1"):
    return StockService.register_purchase(db, PurchaseCreate(
        product_id=product.id,
        quantity=quantity,
        document_type="FACTURA",
        document_number=document_number,
    ), actor_id=user.id)


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def product(db):
    return make_product(db)
