import pytest
from fastapi.testclient import TestClient

from app.core.config import IncidentRules, Settings
from app.dependencies import get_incident_service
from app.main import app
from app.services.incident_service import IncidentService
from app.services.incident_store import IncidentStore


VALID_INCIDENT = {
    "title": "Server outage down",
    "description": "Production server unresponsive since 10am",
    "category": "IT",
    "severity": "HIGH",
}


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def rules(settings):
    return IncidentRules.from_settings(settings)


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data" / "incidents.json"


@pytest.fixture
def store(data_file):
    store = IncidentStore(data_file)
    store.initialize()
    return store


@pytest.fixture
def service(store, rules):
    return IncidentService(store, rules)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_incident_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def valid_incident():
    return dict(VALID_INCIDENT)
