"""
Pytest fixtures for storefront backend tests.

Provides test database setup, account and catalog fixtures, and test client.
"""

import json
from decimal import Decimal

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.models import User, Product, ROLE_ADMIN, ROLE_USER
from storefront.services.auth_service import hash_password
from storefront.services.payment_gateway import EVENT_CHECKOUT_COMPLETED, get_gateway


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SECRET_KEY': 'test-secret-key',
        'BCRYPT_ROUNDS': 4,
        'PAYMENT_GATEWAY': 'fake',
        'STRIPE_WEBHOOK_SECRET': 'whsec_test',
        'PUBLIC_URL': 'http://shop.test',
        'ALLOW_ADMIN_REGISTRATION': False,
    })

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


def make_user(db_session, email, role=ROLE_USER, name="Test User"):
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(PASSWORD),
        role=role,
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_product(db_session, name="Product", price="10.00", stock=10, category="Electronics", **extra):
    product = Product(
        name=name,
        description=extra.pop("description", f"{name} description"),
        price=Decimal(price),
        category=category,
        stock=stock,
        image=extra.pop("image", f"https://img.test/{name.lower().replace(' ', '-')}.jpg"),
        images=extra.pop("images", []),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session):
    """Regular storefront account."""
    return make_user(db_session, "customer@example.com", name="Casey Customer")


@pytest.fixture(scope='function')
def other_customer(db_session):
    """Second regular account, for ownership checks."""
    return make_user(db_session, "other@example.com", name="Olive Other")


@pytest.fixture(scope='function')
def admin(db_session):
    """Admin console account."""
    return make_user(db_session, "admin@example.com", role=ROLE_ADMIN, name="Ada Admin")


@pytest.fixture(scope='function')
def product_a(db_session):
    return make_product(db_session, name="Product A", price="10.00", stock=10)


@pytest.fixture(scope='function')
def product_b(db_session):
    return make_product(db_session, name="Product B", price="5.00", stock=3, category="Home")


def get_auth_token(client, email: str, password: str = PASSWORD, role: str = ROLE_USER) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
        'role': role,
    })
    if response.status_code == 200:
        return response.json['data'].get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, customer.email))


@pytest.fixture(scope='function')
def other_headers(client, other_customer):
    return auth_headers(get_auth_token(client, other_customer.email))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email, role=ROLE_ADMIN))


def completed_session_payload(session_id: str, user_id, cart_id, payment_intent="pi_test_123") -> bytes:
    """Body of a checkout.session.completed event as the provider sends it."""
    return json.dumps({
        "id": "evt_test",
        "type": EVENT_CHECKOUT_COMPLETED,
        "data": {
            "object": {
                "id": session_id,
                "payment_intent": payment_intent,
                "metadata": {"user_id": str(user_id), "cart_id": str(cart_id)},
            }
        },
    }).encode("utf-8")


def post_webhook(client, payload: bytes, signature: str | None = None):
    """Deliver a webhook signed by the fake gateway unless a signature is given."""
    if signature is None:
        signature = get_gateway().sign(payload)
    return client.post(
        '/api/payment/webhook',
        data=payload,
        headers={'Stripe-Signature': signature, 'Content-Type': 'application/json'},
    )
