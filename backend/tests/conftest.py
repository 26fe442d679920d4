"""
Pytest fixtures for fulfillment backend tests.

Provides test database setup, seeded products, and test client helpers.
"""

import pytest

from fulfillment import create_app
from fulfillment.extensions import db
from fulfillment.models import Balance, BALANCE_ID, BalanceTransaction, Product, Sale
from fulfillment.services import order_service


ADMIN_TOKEN = "admin-token"
CUSTOMER_TOKEN = "shop-token"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'API_TOKENS': f"{ADMIN_TOKEN}:admin-1:admin,{CUSTOMER_TOKEN}:storefront:customer",
    'TRANSACTION_BACKOFF_BASE': 0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_product(session, product_id="p1", **overrides) -> Product:
    """Insert a product row and return it committed."""
    values = {
        "id": product_id,
        "name": f"Product {product_id}",
        "price_cents": 2000,
        "purchase_price_cents": 500,
        "quantity": 10,
    }
    values.update(overrides)
    product = Product(**values)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product(db_session):
    """p1: 10 in stock, bought for 5.00, listed at 20.00."""
    return make_product(db_session, "p1")


@pytest.fixture(scope='function')
def second_product(db_session):
    """p2: only 2 in stock."""
    return make_product(db_session, "p2", name="Product p2", price_cents=1500, purchase_price_cents=700, quantity=2)


@pytest.fixture(scope='function')
def sized_product(db_session):
    """Sneaker with size buckets; bucket sum intentionally differs from global stock."""
    return make_product(
        db_session,
        "shoe",
        name="Sneaker",
        price_cents=8000,
        purchase_price_cents=3000,
        quantity=5,
        sizes=[{"size": "42", "quantity": 2}, {"size": "43", "quantity": 4}],
    )


def place_order(*items, user_id="customer-1"):
    """Create a pending order through the intake service."""
    return order_service.create_order(list(items), user_id=user_id)


def stock_of(product_id: str) -> int:
    product = db.session.get(Product, product_id)
    db.session.refresh(product)
    return product.quantity


def sizes_of(product_id: str) -> dict:
    product = db.session.get(Product, product_id)
    db.session.refresh(product)
    return {bucket["size"]: bucket["quantity"] for bucket in product.size_buckets()}


def balance_totals() -> tuple:
    balance = db.session.get(Balance, BALANCE_ID)
    if balance is None:
        return 0, 0
    db.session.refresh(balance)
    return balance.total_income_cents, balance.real_profit_cents


def ledger_lines(include_deleted: bool = True) -> list:
    query = db.session.query(BalanceTransaction)
    if not include_deleted:
        query = query.filter(BalanceTransaction.deleted.is_(False))
    return query.order_by(BalanceTransaction.id).all()


def sales(include_deleted: bool = True) -> list:
    query = db.session.query(Sale)
    if not include_deleted:
        query = query.filter(Sale.deleted.is_(False))
    return query.order_by(Sale.id).all()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers():
    return auth_headers(ADMIN_TOKEN)


@pytest.fixture(scope='function')
def customer_headers():
    return auth_headers(CUSTOMER_TOKEN)
