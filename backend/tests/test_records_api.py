"""
HTTP tests for the record routes.

Clients echo back the version they read; a stale version is a 409.
"""

import pytest


def _create(client, name="alpha", value=100):
    response = client.post("/api/records", json={"name": name, "value": value})
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestRecordCRUD:
    def test_create_starts_at_version_one(self, client):
        body = _create(client)
        assert body["version"] == 1
        assert body["deleted_at"] is None

    def test_create_requires_name(self, client):
        response = client.post("/api/records", json={"value": 1})
        assert response.status_code == 400
        assert "name" in response.get_json()["error"]

    def test_version_is_not_writable(self, client):
        response = client.post("/api/records", json={"name": "alpha", "version": 5})
        assert response.status_code == 400

    def test_update_bumps_version(self, client):
        created = _create(client)

        response = client.put(f"/api/records/{created['id']}", json={"value": 5, "version": 1})

        assert response.status_code == 200
        body = response.get_json()
        assert (body["value"], body["version"]) == (5, 2)

    def test_update_requires_version(self, client):
        created = _create(client)
        response = client.put(f"/api/records/{created['id']}", json={"value": 5})
        assert response.status_code == 400
        assert response.get_json()["error"] == "version is required"

    @pytest.mark.parametrize("version", ["abc", 0, -1, 1.5])
    def test_update_rejects_bad_version(self, client, version):
        created = _create(client)
        response = client.put(f"/api/records/{created['id']}", json={"value": 5, "version": version})
        assert response.status_code == 400

    def test_update_unknown_record(self, client):
        response = client.put("/api/records/999999", json={"value": 5, "version": 1})
        assert response.status_code == 404

    def test_list_and_get(self, client):
        first = _create(client, name="alpha")
        second = _create(client, name="beta")

        listed = client.get("/api/records").get_json()["items"]
        assert [r["id"] for r in listed] == [first["id"], second["id"]]

        response = client.get(f"/api/records/{second['id']}")
        assert response.status_code == 200
        assert response.get_json()["name"] == "beta"


class TestRecordConflicts:
    def test_stale_update_is_rejected(self, client):
        created = _create(client)
        record_url = f"/api/records/{created['id']}"

        assert client.put(record_url, json={"value": 1, "version": 1}).status_code == 200

        response = client.put(record_url, json={"name": "late", "version": 1})
        assert response.status_code == 409
        assert response.get_json()["expected_version"] == 1

        stored = client.get(record_url).get_json()
        assert (stored["name"], stored["value"], stored["version"]) == ("alpha", 1, 2)

    def test_stale_delete_is_rejected(self, client):
        created = _create(client)
        record_url = f"/api/records/{created['id']}"
        client.put(record_url, json={"value": 1, "version": 1})

        assert client.delete(f"{record_url}?version=1").status_code == 409
        assert client.delete(f"{record_url}?version=1&hard=1").status_code == 409
        assert client.get(record_url).status_code == 200


class TestRecordDeletion:
    @pytest.mark.parametrize("sets_version", [True, False])
    def test_soft_delete(self, app, client, monkeypatch, sets_version):
        monkeypatch.setitem(app.config, "ROWGUARD_SOFT_DELETE_SETS_VERSION", sets_version)
        created = _create(client)
        record_url = f"/api/records/{created['id']}"

        response = client.delete(f"{record_url}?version=1")
        assert response.status_code == 200
        body = response.get_json()
        assert body["version"] == 2
        assert body["deleted_at"] is not None

        assert client.get(record_url).status_code == 404
        hidden = client.get(f"{record_url}?include_deleted=1")
        assert hidden.status_code == 200
        assert hidden.get_json()["version"] == 2

        assert client.get("/api/records").get_json()["items"] == []
        assert len(client.get("/api/records?include_deleted=1").get_json()["items"]) == 1

    def test_update_of_soft_deleted_record_is_not_found(self, client):
        created = _create(client)
        record_url = f"/api/records/{created['id']}"
        client.delete(f"{record_url}?version=1")

        response = client.put(record_url, json={"value": 2, "version": 2})
        assert response.status_code == 404

    def test_hard_delete(self, client):
        created = _create(client)
        record_url = f"/api/records/{created['id']}"

        response = client.delete(f"{record_url}?version=1&hard=1")
        assert response.status_code == 200
        assert response.get_json() == {"ok": True}
        assert client.get(f"{record_url}?include_deleted=1").status_code == 404

    def test_hard_delete_of_soft_deleted_record(self, client):
        created = _create(client)
        record_url = f"/api/records/{created['id']}"
        client.delete(f"{record_url}?version=1")

        assert client.delete(f"{record_url}?version=2&hard=1").status_code == 200
        assert client.get(f"{record_url}?include_deleted=1").status_code == 404

    def test_delete_requires_version(self, client):
        created = _create(client)
        response = client.delete(f"/api/records/{created['id']}")
        assert response.status_code == 400


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"
