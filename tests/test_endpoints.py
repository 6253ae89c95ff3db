"""Tests de la API HTTP: CRUD de perfiles, formularios y diagnóstico.

La app se construye con store en memoria y conector falso; el lifespan
corre dentro de TestClient.

Ejecutar:
    pytest tests/test_endpoints.py -v
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from simulator_api.infrastructure.persistence import InMemoryProfileStore
from simulator_api.main import create_app

from conftest import FakeConnector


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def client(settings, store):
    app = create_app(settings, store=store, connector=FakeConnector())
    with TestClient(app) as c:
        yield c


@pytest.fixture
def random_body():
    return {
        "username": "greenhouse",
        "minT": 18,
        "maxT": 26,
        "minH": 40,
        "maxH": 60,
        "interval": 1000,
    }


# =============================================================================
# JSON: CREAR Y VALIDAR
# =============================================================================

class TestCreateProfile:

    def test_create_running_profile_starts_session(self, client, random_body):
        r = client.post("/profiles", json=random_body)

        assert r.status_code == 201
        body = r.json()
        assert body["username"] == "greenhouse"
        assert body["minT"] == 18.0
        assert body["running"] is True
        assert body["live"] is True
        assert client.get("/sessions").json()["active"] == [body["id"]]

    def test_create_stopped_profile_has_no_session(self, client, random_body):
        r = client.post("/profiles", json={**random_body, "running": False})

        assert r.status_code == 201
        assert r.json()["live"] is False
        assert client.get("/sessions").json()["active"] == []

    def test_create_fixed_profile(self, client):
        r = client.post("/profiles", json={
            "username": "cold-room",
            "fixed": True,
            "temperature": 4.5,
            "humidity": 80,
            "dsTemperature": 3.9,
            "doorStatus": "closed",
        })

        assert r.status_code == 201
        body = r.json()
        assert body["fixed"] is True
        assert body["dsTemperature"] == 3.9
        assert body["doorStatus"] == "closed"
        assert body["interval"] == 2000

    def test_reversed_range_rejected(self, client, random_body):
        r = client.post("/profiles", json={**random_body, "minT": 30, "maxT": 20})
        assert r.status_code == 422

    def test_fixed_without_literals_rejected(self, client):
        r = client.post("/profiles", json={"username": "x", "fixed": True, "temperature": 20})
        assert r.status_code == 422

    def test_random_without_ranges_rejected(self, client):
        r = client.post("/profiles", json={"username": "x"})
        assert r.status_code == 422

    def test_non_positive_interval_rejected(self, client, random_body):
        r = client.post("/profiles", json={**random_body, "interval": 0})
        assert r.status_code == 422

    def test_missing_username_rejected(self, client, random_body):
        body = dict(random_body)
        del body["username"]
        assert client.post("/profiles", json=body).status_code == 422


# =============================================================================
# JSON: LEER, ACTUALIZAR, START/STOP, BORRAR
# =============================================================================

class TestProfileLifecycle:

    def test_list_and_get(self, client, random_body):
        created = client.post("/profiles", json=random_body).json()

        listed = client.get("/profiles").json()
        assert [p["id"] for p in listed] == [created["id"]]

        r = client.get(f"/profiles/{created['id']}")
        assert r.status_code == 200
        assert r.json()["username"] == "greenhouse"

    def test_get_missing_is_404(self, client):
        assert client.get("/profiles/missing").status_code == 404

    def test_index(self, client, random_body):
        created = client.post("/profiles", json=random_body).json()

        body = client.get("/").json()

        assert [p["id"] for p in body["profiles"]] == [created["id"]]
        assert body["active_sessions"] == [created["id"]]

    def test_stop_and_start(self, client, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        stopped = client.post(f"/profiles/{pid}/stop").json()
        assert stopped["running"] is False
        assert stopped["live"] is False

        started = client.post(f"/profiles/{pid}/start").json()
        assert started["running"] is True
        assert started["live"] is True

    def test_start_missing_is_404(self, client):
        assert client.post("/profiles/missing/start").status_code == 404

    def test_partial_update(self, client, store, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        r = client.put(f"/profiles/{pid}", json={"maxT": 30, "interval": 500})

        assert r.status_code == 200
        assert r.json()["maxT"] == 30.0
        assert r.json()["minT"] == 18.0
        assert store.find_by_id(pid).interval == 500
        assert r.json()["live"] is True

    def test_update_producing_reversed_range_rejected(self, client, store, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        r = client.put(f"/profiles/{pid}", json={"maxT": 10})

        assert r.status_code == 422
        assert store.find_by_id(pid).max_t == 26.0

    def test_update_to_stopped_closes_session(self, client, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        r = client.put(f"/profiles/{pid}", json={"running": False})

        assert r.json()["live"] is False
        assert client.get("/sessions").json()["active"] == []

    def test_update_missing_is_404(self, client):
        assert client.put("/profiles/missing", json={"username": "x"}).status_code == 404

    def test_delete(self, client, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        assert client.delete(f"/profiles/{pid}").status_code == 204
        assert client.get(f"/profiles/{pid}").status_code == 404
        assert client.delete(f"/profiles/{pid}").status_code == 404
        assert client.get("/sessions").json()["active"] == []

    def test_delete_all(self, client, random_body):
        client.post("/profiles", json=random_body)
        client.post("/profiles", json={**random_body, "username": "second"})

        assert client.delete("/profiles").status_code == 204
        assert client.get("/profiles").json() == []
        assert client.get("/sessions").json()["active"] == []


# =============================================================================
# FORMULARIOS
# =============================================================================

class TestFormRoutes:

    def test_add_fixed_profile(self, client, store):
        r = client.post(
            "/add",
            data={
                "username": "form-device",
                "fixed": "on",
                "temperature": "21.5",
                "humidity": "50",
                "dsTemperature": "19",
                "doorStatus": "open",
                "minT": "",
                "maxT": "",
            },
            follow_redirects=False,
        )

        assert r.status_code == 303
        assert r.headers["location"] == "/"
        profile = store.find_all()[0]
        assert profile.fixed is True
        assert profile.temperature == 21.5
        assert profile.min_t is None
        assert profile.running is True

    def test_add_without_checkbox_is_random(self, client, store):
        r = client.post(
            "/add",
            data={"username": "d", "minT": "1", "maxT": "2", "minH": "3", "maxH": "4"},
            follow_redirects=False,
        )

        assert r.status_code == 303
        assert store.find_all()[0].fixed is False

    def test_add_invalid_is_422(self, client):
        r = client.post("/add", data={"username": "d"}, follow_redirects=False)
        assert r.status_code == 422

    def test_update_form_replaces_profile(self, client, store, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        r = client.post(
            f"/update/{pid}",
            data={"username": "renamed", "minT": "0", "maxT": "5", "minH": "10", "maxH": "20"},
            follow_redirects=False,
        )

        assert r.status_code == 303
        profile = store.find_by_id(pid)
        assert profile.username == "renamed"
        assert profile.max_t == 5.0
        assert profile.interval == 2000
        assert profile.running is True

    def test_start_stop_delete_forms(self, client, store, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        assert client.post(f"/stop/{pid}", follow_redirects=False).status_code == 303
        assert store.find_by_id(pid).running is False
        assert client.get("/sessions").json()["active"] == []

        assert client.post(f"/start/{pid}", follow_redirects=False).status_code == 303
        assert client.get("/sessions").json()["active"] == [pid]

        assert client.post(f"/delete/{pid}", follow_redirects=False).status_code == 303
        assert store.find_by_id(pid) is None

    def test_delete_all_form(self, client, store, random_body):
        client.post("/profiles", json=random_body)

        r = client.post("/delete-all", follow_redirects=False)

        assert r.status_code == 303
        assert store.find_all() == []


# =============================================================================
# SESIONES, RECONCILIACIÓN, HEALTH
# =============================================================================

class TestDiagnostics:

    def test_sessions_snapshot(self, client, random_body):
        pid = client.post("/profiles", json=random_body).json()["id"]

        body = client.get("/sessions").json()

        assert body["active"] == [pid]
        assert body["sessions"][0]["profile_id"] == pid
        assert body["sessions"][0]["username"] == "greenhouse"

    def test_reconcile_starts_profile_created_out_of_band(self, client, store):
        profile = store.create({
            "username": "external",
            "min_t": 1.0,
            "max_t": 2.0,
            "min_h": 1.0,
            "max_h": 2.0,
            "interval": 1000,
            "running": True,
        })

        r = client.post("/reconcile")

        assert r.status_code == 200
        assert r.json() == {"stopped": [], "started": [profile.id], "ok": True}

    def test_profiles_running_at_startup_are_resumed(self, settings, store):
        profile = store.create({
            "username": "boot",
            "min_t": 1.0,
            "max_t": 2.0,
            "min_h": 1.0,
            "max_h": 2.0,
            "interval": 1000,
            "running": True,
        })

        with TestClient(create_app(settings, store=store, connector=FakeConnector())) as c:
            assert c.get("/sessions").json()["active"] == [profile.id]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready_with_store_without_ping(self, client):
        r = client.get("/ready")
        assert r.status_code == 200
        assert r.json() == {"status": "ready"}

    def test_ready_when_store_down(self, settings):
        store = InMemoryProfileStore()
        store.ping = MagicMock(side_effect=RuntimeError("db down"))

        with TestClient(create_app(settings, store=store, connector=FakeConnector())) as c:
            assert c.get("/ready").status_code == 503

    def test_metrics(self, client, random_body):
        client.post("/profiles", json=random_body)

        r = client.get("/metrics")

        assert r.status_code == 200
        assert "simulator_live_sessions" in r.text
        assert "simulator_reconcile_runs_total" in r.text

    def test_store_error_is_500(self, settings):
        store = InMemoryProfileStore()
        with TestClient(create_app(settings, store=store, connector=FakeConnector())) as c:
            store.find_all = MagicMock(side_effect=RuntimeError("db down"))
            r = c.get("/profiles")

        assert r.status_code == 500
        assert r.json()["detail"] == "DB error: RuntimeError"
