"""
Pytest fixtures for SaleSync backend tests.

Provides an in-memory database, a recording publisher, users, a product
and HTTP / Socket.IO test clients.
"""

import pytest

from salesync import create_app
from salesync.config import Config
from salesync.extensions import db, socketio
from salesync.models import Category, Product, User
from salesync.models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from salesync.realtime import InMemoryPublisher, get_dispatcher
from salesync.services import session_service
from salesync.services.auth_service import hash_password


PASSWORD = "Password123!"


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    REALTIME_ENABLED = True
    SOCKETIO_CORS_ORIGINS = ["*"]
    SOCKETIO_ASYNC_MODE = "threading"
    LOG_LEVEL = "DEBUG"
    CORS_ALLOWED_ORIGINS = ["http://localhost:5173"]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
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


@pytest.fixture(scope='function')
def publisher(db_session):
    """Swap the dispatcher's transport for a recorder for the duration of a test."""
    dispatcher = get_dispatcher()
    original = dispatcher.publisher
    recorder = InMemoryPublisher()
    dispatcher.publisher = recorder
    yield recorder
    dispatcher.publisher = original


def _make_user(db_session, username: str, role: str, first_name: str, last_name: str) -> User:
    user = User(
        username=username,
        email=f"{username}@salesync.local",
        first_name=first_name,
        last_name=last_name,
        role=role,
        password_hash=hash_password(PASSWORD, rounds=4),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "admin", ROLE_ADMIN, "Ada", "Admin")


@pytest.fixture(scope='function')
def second_admin(db_session):
    return _make_user(db_session, "admin2", ROLE_ADMIN, "Bea", "Boss")


@pytest.fixture(scope='function')
def employee(db_session):
    return _make_user(db_session, "employee", ROLE_EMPLOYEE, "Eli", "Seller")


@pytest.fixture(scope='function')
def other_employee(db_session):
    return _make_user(db_session, "employee2", ROLE_EMPLOYEE, "Fay", "Clerk")


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Accessories")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def product(db_session, category):
    """Stock 5, price 100, cost 60 (all cents). min_stock_level 2 keeps it out of low-stock range."""
    prod = Product(
        sku="CABLE-001",
        name="USB Cable",
        category=category,
        price_cents=100,
        cost_price_cents=60,
        qty_in_stock=5,
        min_stock_level=2,
    )
    db_session.add(prod)
    db_session.commit()
    return prod


@pytest.fixture(scope='function')
def admin_token(admin):
    _, token = session_service.create_session(admin.id)
    return token


@pytest.fixture(scope='function')
def employee_token(employee):
    _, token = session_service.create_session(employee.id)
    return token


@pytest.fixture(scope='function')
def admin_headers(admin_token):
    return auth_headers(admin_token)


@pytest.fixture(scope='function')
def employee_headers(employee_token):
    return auth_headers(employee_token)


@pytest.fixture(scope='function')
def admin_socket(app, client, admin, admin_token):
    """Connected Socket.IO client for the admin, already in its rooms."""
    sio = socketio.test_client(app, auth={"token": admin_token}, flask_test_client=client)
    sio.emit("join_sales_room", {"userId": admin.id, "role": ROLE_ADMIN}, callback=True)
    sio.get_received()
    yield sio
    if sio.is_connected():
        sio.disconnect()


@pytest.fixture(scope='function')
def employee_socket(app, client, employee, employee_token):
    """Connected Socket.IO client for the employee, already in its rooms."""
    sio = socketio.test_client(app, auth={"token": employee_token}, flask_test_client=client)
    sio.emit("join_sales_room", {"userId": employee.id, "role": ROLE_EMPLOYEE}, callback=True)
    sio.get_received()
    yield sio
    if sio.is_connected():
        sio.disconnect()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def fresh(db_session):
    """Return a loader that re-reads a row from the database, bypassing the identity map."""
    def _fresh(model, pk):
        db_session.expire_all()
        return db_session.get(model, pk)
    return _fresh
