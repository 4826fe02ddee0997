# tests/conftest.py

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from main import app
from auth import create_access_token
from payments import StripePaymentGateway, get_payment_gateway
from repository import NinjaSchoolRepository, get_repository


@pytest.fixture
def repo():
    return MagicMock(spec=NinjaSchoolRepository)


@pytest.fixture
def gateway():
    return MagicMock(spec=StripePaymentGateway)


@pytest.fixture
def client(repo, gateway):
    """
    TestClient with the repository and payment gateway replaced by mocks.
    The lifespan is not entered, so no MongoDB connection is made.
    """
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(email="student@ninja.school", **claims):
    token = create_access_token({"email": email, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def collections():
    """A fake pymongo Database whose collections are separate mocks."""
    names = ["users", "classes", "bookedClasses", "payments"]
    cols = {name: MagicMock(name=name) for name in names}
    db = MagicMock()
    db.__getitem__.side_effect = cols.__getitem__
    return db, cols
