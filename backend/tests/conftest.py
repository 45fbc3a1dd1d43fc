"""
Sales CRM - Test fixtures
Run: cd backend && pytest tests -v
"""

import pytest

from tests.fake_mongo import FakeMotorClient


@pytest.fixture
def client():
    return FakeMotorClient()


@pytest.fixture
def db(client):
    return client["test_sales_crm"]
