import pytest
from rest_framework.test import APIClient

from realtime_chat.realtime.registry import ConnectionRegistry
from realtime_chat.realtime.tests.fakes import FakeTransport
from realtime_chat.realtime.tests.fakes import InMemoryMessageStore
from realtime_chat.users.tests.factories import create_user


@pytest.fixture
def user(db):
    return create_user("alice@example.com", name="Alice")


@pytest.fixture
def other_user(db):
    return create_user("bob@example.com", name="Bob")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return InMemoryMessageStore()
