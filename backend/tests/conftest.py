"""
Pytest fixtures for RetailPOS backend tests.

Provides test database setup, users for every role, products and a test client.
"""

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Brand, Category, Product, User
from retailpos.models.auth import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_MANAGER
from retailpos.models.inventory import MOVEMENT_IN
from retailpos.services import session_service
from retailpos.services.auth_service import hash_password
from retailpos.services.inventory_service import append_movement


PASSWORD = "Password123!"

# bcrypt is deliberately slow; hash once for every fixture user
PASSWORD_HASH = hash_password(PASSWORD)

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'AUDIT_ASYNC': False,
    'DEFAULT_TAX_RATE': '0.19',
    'STORE_TIMEZONE': 'UTC',
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


def make_user(db_session, *, name: str, email: str, role: str, is_active: bool = True) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=PASSWORD_HASH,
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_product(
    db_session,
    *,
    sku: str,
    name: str,
    price_cents: int = 1000,
    stock: int | None = 0,
    stock_min: int = 0,
    category: Category | None = None,
    is_active: bool = True,
) -> Product:
    """Product with its opening stock recorded as an IN movement."""
    product = Product(
        sku=sku,
        name=name,
        sale_price_cents=price_cents,
        cost_price_cents=price_cents // 2,
        stock_cached=0 if stock is not None else None,
        stock_min=stock_min,
        category=category,
        is_active=is_active,
    )
    db_session.add(product)
    db_session.flush()
    if stock:
        append_movement(product, movement_type=MOVEMENT_IN, quantity=stock, user_id=None, note="Opening stock")
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(db_session, name="Ada Admin", email="admin@test.local", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager_user(db_session):
    return make_user(db_session, name="Max Manager", email="manager@test.local", role=ROLE_MANAGER)


@pytest.fixture(scope='function')
def employee_user(db_session):
    return make_user(db_session, name="Eve Employee", email="employee@test.local", role=ROLE_EMPLOYEE)


@pytest.fixture(scope='function')
def second_employee(db_session):
    return make_user(db_session, name="Sam Seller", email="seller@test.local", role=ROLE_EMPLOYEE)


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="SHIRTS")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def brand(db_session):
    b = Brand(name="ACME")
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def product(db_session, category):
    """Tracked product: price 1000, stock 10."""
    return make_product(db_session, sku="TEE-001", name="Basic Tee", price_cents=1000, stock=10, category=category)


@pytest.fixture(scope='function')
def other_product(db_session):
    """Tracked product without category: price 2500, stock 5."""
    return make_product(db_session, sku="CAP-001", name="Cap", price_cents=2500, stock=5)


def session_headers(user: User) -> dict:
    """Authorization headers for a fresh session (skips the bcrypt login round trip)."""
    _, token = session_service.create_session(user_id=user.id)
    return auth_headers(token)


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return session_headers(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return session_headers(manager_user)


@pytest.fixture(scope='function')
def employee_headers(employee_user):
    return session_headers(employee_user)
