"""
CLI command tests (flask system / users / catalog).
"""

from storefront.cli import SAMPLE_PRODUCTS, DEFAULT_ADMIN
from storefront.models import Product, User, ROLE_ADMIN
from storefront.services.auth_service import verify_password


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "PASS Schema ready" in result.output


def test_users_create_admin(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--name", "Ops Admin",
        "--email", "Ops@Example.com",
        "--password", "longenough",
        "--role", "admin",
    ])
    assert result.exit_code == 0, result.output

    user = db_session.query(User).filter_by(email="ops@example.com").one()
    assert user.role == ROLE_ADMIN
    assert verify_password("longenough", user.password_hash)


def test_users_create_rejects_duplicate(app, db_session, customer):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--name", "Dup",
        "--email", customer.email,
        "--password", "longenough",
    ])
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_users_create_rejects_short_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--name", "X", "--email", "x@example.com", "--password", "short",
    ])
    assert result.exit_code != 0


def test_users_list(app, db_session, customer, admin):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "list"])
    assert result.exit_code == 0
    assert customer.email in result.output
    assert admin.email in result.output

    result = runner.invoke(args=["users", "list", "--role", "admin"])
    assert customer.email not in result.output


def test_catalog_seed(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["catalog", "seed"])
    assert result.exit_code == 0, result.output

    assert db_session.query(Product).count() == len(SAMPLE_PRODUCTS)
    admin = db_session.query(User).filter_by(email=DEFAULT_ADMIN["email"]).one()
    assert admin.role == ROLE_ADMIN

    headphones = db_session.query(Product).filter_by(name="Wireless Bluetooth Headphones").one()
    assert float(headphones.price) == 89.99
    assert headphones.stock == 50

    # Second run adds nothing
    result = runner.invoke(args=["catalog", "seed"])
    assert result.exit_code == 0
    assert db_session.query(Product).count() == len(SAMPLE_PRODUCTS)
    assert db_session.query(User).count() == 1


def test_catalog_seed_reset(app, db_session, product_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["catalog", "seed", "--reset"])
    assert result.exit_code == 0, result.output
    assert db_session.query(Product).filter_by(name="Product A").count() == 0
    assert db_session.query(Product).count() == len(SAMPLE_PRODUCTS)
