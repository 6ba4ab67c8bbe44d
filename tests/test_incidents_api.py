from datetime import datetime, timezone


def _create(client, payload):
    response = client.post("/api/incidents", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] in ("ok", "starting")


def test_create_incident(client, valid_incident):
    before = datetime.now(timezone.utc)
    incident = _create(client, valid_incident)

    assert incident["status"] == "OPEN"
    assert incident["id"]
    assert incident["title"] == "Server outage down"
    reported_at = datetime.fromisoformat(incident["reportedAt"].replace("Z", "+00:00"))
    assert before <= reported_at <= datetime.now(timezone.utc)


def test_create_invalid_incident_lists_every_error(client):
    response = client.post("/api/incidents", json={"title": "abc", "category": "NETWORK"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_FAILED"
    assert [e["field"] for e in body["errors"]] == ["title", "description", "category", "severity"]


def test_get_incident(client, valid_incident):
    incident = _create(client, valid_incident)
    response = client.get(f"/api/incidents/{incident['id']}")
    assert response.status_code == 200
    assert response.json() == incident


def test_get_missing_incident(client):
    response = client.get("/api/incidents/unknown-id")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "detail": "Incident unknown-id not found",
        "code": "NOT_FOUND",
    }


def test_status_workflow_example(client, valid_incident):
    incident_id = _create(client, valid_incident)["id"]

    response = client.patch(f"/api/incidents/{incident_id}/status", json={"status": "INVESTIGATING"})
    assert response.status_code == 200
    assert response.json()["status"] == "INVESTIGATING"

    response = client.patch(f"/api/incidents/{incident_id}/status", json={"status": "RESOLVED"})
    assert response.status_code == 200
    assert response.json()["status"] == "RESOLVED"

    response = client.patch(f"/api/incidents/{incident_id}/status", json={"status": "ARCHIVED"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"

    response = client.post(f"/api/incidents/{incident_id}/archive")
    assert response.status_code == 200
    assert response.json()["status"] == "ARCHIVED"


def test_generic_update_cannot_reset(client, valid_incident):
    incident_id = _create(client, valid_incident)["id"]
    client.post(f"/api/incidents/{incident_id}/archive")

    response = client.patch(f"/api/incidents/{incident_id}/status", json={"status": "OPEN"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"

    response = client.post(f"/api/incidents/{incident_id}/reset")
    assert response.status_code == 200
    assert response.json()["status"] == "OPEN"


def test_unknown_status_rejected(client, valid_incident):
    incident_id = _create(client, valid_incident)["id"]
    for body in ({"status": "CLOSED"}, {}, {"status": 3}, {"status": ["OPEN"]}, {"status": None}):
        response = client.patch(f"/api/incidents/{incident_id}/status", json=body)
        assert response.status_code == 400
        assert response.json()["code"] == "UNKNOWN_STATUS"


def test_status_change_on_missing_incident(client):
    response = client.patch("/api/incidents/nope/status", json={"status": "INVESTIGATING"})
    assert response.status_code == 404


def test_archive_investigating_incident_fails(client, valid_incident):
    incident_id = _create(client, valid_incident)["id"]
    client.patch(f"/api/incidents/{incident_id}/status", json={"status": "INVESTIGATING"})

    response = client.post(f"/api/incidents/{incident_id}/archive")
    assert response.status_code == 400
    assert response.json()["code"] == "NOT_ARCHIVABLE"


def test_reset_open_incident_fails(client, valid_incident):
    incident_id = _create(client, valid_incident)["id"]
    response = client.post(f"/api/incidents/{incident_id}/reset")
    assert response.status_code == 400
    assert response.json()["code"] == "NOT_RESETTABLE"


def test_archive_and_reset_missing_incident(client):
    for action in ("archive", "reset"):
        response = client.post(f"/api/incidents/nope/{action}")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


def test_list_excludes_archived_by_default(client, valid_incident):
    kept = _create(client, valid_incident)
    archived = _create(client, dict(valid_incident, title="Coffee machine leaking"))
    client.post(f"/api/incidents/{archived['id']}/archive")

    default = client.get("/api/incidents").json()
    assert [i["id"] for i in default] == [kept["id"]]

    explicit = client.get("/api/incidents", params={"includeArchived": "false"}).json()
    assert [i["id"] for i in explicit] == [kept["id"]]

    everything = client.get("/api/incidents", params={"includeArchived": "true"}).json()
    assert [i["id"] for i in everything] == [kept["id"], archived["id"]]


def test_bulk_upload(client):
    csv_data = (
        "title,description,category,severity\n"
        "Server outage down,Production server unresponsive,IT,HIGH\n"
        "Bad,short,IT,HIGH\n"
        "Broken door lock,Main entrance lock jammed,FACILITIES,LOW\n"
    ).encode("utf-8")
    response = client.post(
        "/api/incidents/bulk-upload",
        files={"file": ("incidents.csv", csv_data, "text/csv")},
    )
    assert response.status_code == 200
    assert response.json() == {"totalRows": 3, "created": 2, "skipped": 1}

    titles = [i["title"] for i in client.get("/api/incidents").json()]
    assert titles == ["Server outage down", "Broken door lock"]


def test_bulk_upload_malformed_row_imports_nothing(client, service):
    csv_data = (
        "title,description,category,severity\n"
        "Server outage down,Production server unresponsive,IT,HIGH\n"
        '"Unclosed "quote here,desc,IT,LOW\n'
    ).encode("utf-8")
    response = client.post(
        "/api/incidents/bulk-upload",
        files={"file": ("incidents.csv", csv_data, "text/csv")},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "MALFORMED_CSV"
    assert service.store.count() == 0


def test_bulk_upload_runs_import_in_threadpool(client, monkeypatch):
    from app.api.routes import incidents

    calls = []
    real_run_in_threadpool = incidents.run_in_threadpool

    async def recording_run_in_threadpool(func, *args, **kwargs):
        calls.append(func.__name__)
        return await real_run_in_threadpool(func, *args, **kwargs)

    monkeypatch.setattr(incidents, "run_in_threadpool", recording_run_in_threadpool)
    response = client.post(
        "/api/incidents/bulk-upload",
        files={"file": ("incidents.csv", b"title,description,category,severity\n", "text/csv")},
    )
    assert response.status_code == 200
    assert calls == ["bulk_import"]


def test_bulk_upload_without_file(client):
    response = client.post("/api/incidents/bulk-upload")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_UPLOAD"


def test_bulk_upload_malformed_file(client):
    response = client.post(
        "/api/incidents/bulk-upload",
        files={"file": ("incidents.csv", b"name,email\nfoo,bar\n", "text/csv")},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "MALFORMED_CSV"


def test_bulk_upload_rejects_other_file_types(client):
    response = client.post(
        "/api/incidents/bulk-upload",
        files={"file": ("incidents.json", b"[]", "application/json")},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_UPLOAD"


def test_bulk_upload_too_large(client, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "BULK_UPLOAD_MAX_FILE_SIZE", 10)
    response = client.post(
        "/api/incidents/bulk-upload",
        files={"file": ("incidents.csv", b"title,description,category,severity\n", "text/csv")},
    )
    assert response.status_code == 413
    assert response.json()["code"] == "UPLOAD_TOO_LARGE"


def test_persistence_failure_is_reported(client, service, valid_incident, monkeypatch):
    def broken_replace(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr("app.services.incident_store.os.replace", broken_replace)
    response = client.post("/api/incidents", json=valid_incident)
    assert response.status_code == 500
    assert response.json()["code"] == "PERSISTENCE_FAILURE"
    assert service.store.count() == 0


def test_changes_survive_restart(client, service, valid_incident):
    from app.services.incident_store import IncidentStore

    incident_id = _create(client, valid_incident)["id"]
    client.patch(f"/api/incidents/{incident_id}/status", json={"status": "INVESTIGATING"})

    reloaded = IncidentStore(service.store.path)
    reloaded.initialize()
    assert reloaded.find_by_id(incident_id).status.value == "INVESTIGATING"
