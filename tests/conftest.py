"""Pytest configuration: an app wired to mongomock and fake collaborators."""

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from payments import RazorpayGateway


class FakeMailer:
    """Records messages instead of calling Resend."""

    def __init__(self):
        self.sent = []

    def send(self, to, subject, text):
        self.sent.append({"to": to, "subject": subject, "text": text})
        return f"msg_{len(self.sent)}"


class FakeOrders:
    """Stands in for the SDK's order resource; records each create payload."""

    def __init__(self):
        self.calls = []
        self.error = None

    def create(self, data=None, **kwargs):
        self.calls.append(data)
        if self.error:
            raise self.error
        return {"id": "order_TEST123", "amount": data["amount"], "currency": data["currency"], "receipt": data["receipt"]}


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-access-secret",
        refresh_token_secret="test-refresh-secret",
        frontend_url="http://shop.test",
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret="rzp_test_secret",
        log_level="WARNING",
    )


@pytest.fixture
def db():
    return mongomock.MongoClient().fashion_store_test


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def gateway_orders():
    return FakeOrders()


@pytest.fixture
def gateway(settings, gateway_orders):
    gateway = RazorpayGateway(settings)
    gateway.client.order = gateway_orders
    return gateway


@pytest.fixture
def app(settings, db, mailer, gateway):
    return create_app(settings, db=db, mailer=mailer, gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def signup(client, email="asha@example.com", password="s3cret-pass", username="asha"):
    response = client.post("/auth/signup", json={"username": username, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def tokens(client):
    return signup(client)


@pytest.fixture
def auth_headers(tokens):
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


@pytest.fixture
def user_id(db, tokens):
    return str(db["user"].find_one({"email": "asha@example.com"})["_id"])


def make_product(db, name="Runner Tee", price=499.0, images=None, **extra):
    doc = {
        "name": name,
        "description": f"{name} description",
        "price": price,
        "sizes": ["S", "M", "L"],
        "category": "Men",
        "stock": 20,
        "images": images if images is not None else [f"https://img.test/{name}/{i}.jpg" for i in range(5)],
        "brand": "Nike",
    }
    doc.update(extra)
    return str(db["product"].insert_one(doc).inserted_id)


@pytest.fixture
def product_id(db):
    return make_product(db)


@pytest.fixture
def address_id(client, auth_headers):
    response = client.post("/address", headers=auth_headers, json={
        "firstName": "Asha",
        "lastName": "Rao",
        "email": "asha@example.com",
        "phone": "+919800000000",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "country": "India",
        "zipCode": "560001",
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


@pytest.fixture
def missing_id():
    return str(ObjectId())
