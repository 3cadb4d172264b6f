import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.utils.cache import cache


@pytest.fixture(autouse=True)
def clear_report_cache():
    cache.clear()
    cache.hits = 0
    cache.misses = 0
    yield
    cache.clear()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
