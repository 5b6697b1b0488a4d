import os
from datetime import datetime, timezone

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")
os.environ.setdefault("ADMIN_PASSWORD", "admin123")
os.environ.setdefault("DEFAULT_LOG_LEVEL", "WARNING")

import pytest
from fakeredis import FakeAsyncRedis, FakeServer

from barangay_registry.services.aggregation_engine import AggregationEngine
from barangay_registry.services.record_repository import RecordRepository

FIXED_NOW = datetime(2024, 3, 15, 8, 30, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def redis_client(fake_server):
    return FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def concurrent_client(fake_server):
    """Second connection to the same store, acting as a competing request."""
    return FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def repository(redis_client):
    return RecordRepository(redis_client, clock=fixed_clock)


@pytest.fixture
def engine(repository):
    return AggregationEngine(repository, clock=fixed_clock)


def person_fields(**overrides):
    fields = {
        "firstName": "Juan",
        "lastName": "Santos",
        "gender": "Male",
        "birthDate": "1985-06-01",
        "address": "123 Rizal St",
        "contactNumber": "09171234567",
    }
    fields.update(overrides)
    return fields


@pytest.fixture(name="person_fields")
def person_fields_factory():
    return person_fields
