"""Pytest fixtures for the order & payment service tests."""

import mongomock
import pytest
from mongoengine import connect, disconnect

from app import create_app
from Models.orderModel import Order
from Models.paymentModel import Payment
from Services.orderService import OrderService
from Services.paymentService import PaymentService
from Utils.identity import Caller, Role
from Utils.jwt_utils import create_access_token

TEST_JWT_SECRET = "test-jwt-secret-for-the-order-service-suite"


def _drop_collections():
    Order.drop_collection()
    Payment.drop_collection()


@pytest.fixture(autouse=True)
def db():
    """In-memory MongoDB bound to the default mongoengine alias."""
    disconnect(alias="default")
    connect(
        "orders_test",
        host="mongodb://localhost",
        alias="default",
        mongo_client_class=mongomock.MongoClient,
    )
    _drop_collections()
    yield
    _drop_collections()
    disconnect(alias="default")


@pytest.fixture
def app():
    return create_app({
        "TESTING": True,
        "MONGODB_CONNECT": False,
        "LOG_TO_FILES": False,
        "RATELIMIT_ENABLED": False,
        "JWT_SECRET": TEST_JWT_SECRET,
        "BULK_UPDATE_WORKERS": 1,
        "PAYMENT_WEBHOOK_SECRET": None,
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def customer():
    return Caller(user_id="user-1", role=Role.CUSTOMER)


@pytest.fixture
def other_customer():
    return Caller(user_id="user-2", role=Role.CUSTOMER)


@pytest.fixture
def admin():
    return Caller(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def order_service():
    return OrderService(bulk_workers=1)


@pytest.fixture
def payment_service():
    return PaymentService()


def auth_headers(caller, secret=TEST_JWT_SECRET, expires_in_minutes=60):
    token = create_access_token(caller.user_id, caller.role.value, secret, expires_in_minutes)
    return {"Authorization": f"Bearer {token}"}


def order_payload(**overrides):
    """Scenario A order: subtotal 100, tax 10, shipping 5, no discount."""
    payload = {
        "items": [
            {"product_id": "prod-1", "sku": "MUG-01", "name": "Mug", "quantity": 2, "unit_price": 25.0},
            {"product_id": "prod-2", "sku": "CAP-01", "name": "Cap", "quantity": 1, "unit_price": 50.0},
        ],
        "shipping_address": {
            "street": "1 Main St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
            "country": "United States",
        },
        "subtotal": 100,
        "tax": 10,
        "shipping_fee": 5,
        "discount": 0,
        "payment_method": "credit_card",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_order(order_service, customer):
    def _make(caller=None, **overrides):
        return order_service.create_order(caller or customer, order_payload(**overrides))
    return _make
