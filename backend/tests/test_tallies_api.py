"""
HTTP tests for the tally routes.
"""

import pytest

from rowguard.extensions import db
from rowguard.models import Tally


def _create(client, name="visits"):
    response = client.post("/api/tallies", json={"name": name})
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestTallyRoutes:
    def test_create_and_increment(self, client):
        created = _create(client)
        assert (created["count"], created["version"]) == (0, 1)

        response = client.post(f"/api/tallies/{created['id']}/increment", json={"by": 2, "version": 1})

        assert response.status_code == 200
        body = response.get_json()
        assert (body["count"], body["version"]) == (2, 2)

    def test_stale_increment_is_rejected(self, client):
        created = _create(client)
        url = f"/api/tallies/{created['id']}/increment"
        assert client.post(url, json={"version": 1}).status_code == 200

        response = client.post(url, json={"version": 1})

        assert response.status_code == 409
        assert response.get_json()["expected_version"] == 1

    def test_create_rejects_array_body(self, client):
        response = client.post("/api/tallies", json=[1, 2])

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid JSON payload"
        assert db.session.query(Tally).count() == 0

    @pytest.mark.parametrize("body", [[1, 2], "visits", 5])
    def test_increment_rejects_non_object_body(self, client, body):
        created = _create(client)

        response = client.post(f"/api/tallies/{created['id']}/increment", json=body)

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid JSON payload"


class TestTallyUniqueName:
    def test_name_constraint_matches_migration(self):
        names = {c.name for c in Tally.__table__.constraints}
        assert "uq_tallies_name" in names

    def test_duplicate_name_is_a_conflict(self, client):
        _create(client)
        response = client.post("/api/tallies", json={"name": "visits"})
        assert response.status_code == 409
