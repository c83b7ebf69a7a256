import json

import pytest
import requests
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from lessonshop.config import Settings
from lessonshop.main import create_app

BASE_URL = "http://lessons.test/api"


@pytest.fixture
def database():
    return AsyncMongoMockClient()["lessondb_test"]


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("SEED_SAMPLE_DATA", "false")
    monkeypatch.setenv("API_BASE_URL", BASE_URL)
    return Settings()


@pytest.fixture
def client(settings, database):
    with TestClient(create_app(settings, database=database)) as c:
        yield c


@pytest.fixture
def seeded_client(settings, database):
    settings.seed_sample_data = True
    with TestClient(create_app(settings, database=database)) as c:
        yield c


def make_response(status_code, payload=None, url=""):
    r = requests.Response()
    r.status_code = status_code
    r._content = json.dumps(payload).encode("utf-8")
    r.headers["Content-Type"] = "application/json"
    r.url = url
    return r


class FakeSession:
    """Scripted stand-in for requests.Session, keyed by method and API path.

    The last scripted outcome for a route repeats; exceptions are raised.
    """

    def __init__(self):
        self.calls = []
        self.routes = {}

    def on(self, method, path, *outcomes):
        self.routes[(method, path)] = list(outcomes)

    def request(self, method, url, timeout=None, **kwargs):
        path = url[len(BASE_URL):]
        self.calls.append((method, path, kwargs.get("json")))
        outcomes = self.routes.get((method, path))
        if not outcomes:
            raise requests.ConnectionError(f"no route for {method} {path}")
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fake_session():
    return FakeSession()
