import logging
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from creditrisk import __version__
from creditrisk.core.settings import settings
from creditrisk.main import create_app
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.ml.model_store import ModelStore

from conftest import build_model

APPLICANT = {"income_k": 20.0, "debt_to_income": 0.5, "credit_utilization": 0.8}


@pytest.fixture
def store(tmp_path) -> ModelStore:
    return ModelStore(tmp_path / "models")


@pytest.fixture
def client(credit_model, store):
    app = create_app(ModelRegistry(credit_model), store, load_on_startup=False)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def empty_client(store):
    app = create_app(ModelRegistry(), store, load_on_startup=False)
    with TestClient(app) as c:
        yield c


def _error(response) -> dict:
    body = response.json()
    assert set(body) == {"error"}
    assert {"code", "message", "status", "request_id", "timestamp"} <= set(body["error"])
    return body["error"]


# --- health / ready ---

def test_health_is_always_up(empty_client) -> None:
    r = empty_client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["model_loaded"] is False


def test_health_reports_version_and_timestamp(empty_client) -> None:
    body = empty_client.get("/health").json()

    assert body["version"] == __version__
    stamp = datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
    assert stamp.tzinfo is not None


def test_ready_follows_the_registry(empty_client, credit_model) -> None:
    assert empty_client.get("/ready").status_code == 503

    empty_client.app.state.registry.swap(credit_model)

    r = empty_client.get("/ready")
    assert r.status_code == 200
    assert r.json() == {"ready": True, "model_version": "credit_v1"}


# --- /predict ---

def test_predict_without_model_is_503(empty_client) -> None:
    r = empty_client.post("/predict", json={"features": APPLICANT})

    assert r.status_code == 503
    err = _error(r)
    assert err["code"] == "MODEL_NOT_LOADED"
    assert err["status"] == 503


def test_predict_scores_an_applicant(client) -> None:
    r = client.post("/predict", json={"features": APPLICANT})

    assert r.status_code == 200
    body = r.json()
    assert body["decision"] == "deny"
    assert body["risk_tier"] == "HIGH"
    assert body["model_version"] == "credit_v1"
    assert 0.99 < body["probability"] <= 1.0
    assert body["factors"][0]["feature"] == "debt_to_income"
    assert r.headers["content-type"].startswith("application/json")


def test_request_id_header_is_echoed(client) -> None:
    r = client.post("/predict", json={"features": APPLICANT}, headers={"X-Request-Id": "abc-123"})

    assert r.headers["X-Request-Id"] == "abc-123"
    assert r.json()["request_id"] == "abc-123"


def test_payload_request_id_is_used_without_header(client) -> None:
    r = client.post("/predict", json={"features": APPLICANT, "request_id": "loan-42"})

    assert r.json()["request_id"] == "loan-42"
    assert r.headers["X-Request-Id"] == "loan-42"


def test_missing_feature_is_400_schema_mismatch(client) -> None:
    features = {k: v for k, v in APPLICANT.items() if k != "income_k"}
    r = client.post("/predict", json={"features": features, "request_id": "bad-1"})

    assert r.status_code == 400
    err = _error(r)
    assert err["code"] == "SCHEMA_MISMATCH"
    assert err["details"]["missing"] == ["income_k"]
    assert err["request_id"] == "bad-1"


def test_non_numeric_value_is_400_invalid_value(client) -> None:
    r = client.post("/predict", json={"features": dict(APPLICANT, income_k="lots")})

    assert r.status_code == 400
    assert _error(r)["code"] == "INVALID_VALUE"


def test_huge_values_saturate_instead_of_crashing(store) -> None:
    app = create_app(ModelRegistry(build_model([2.0, 1.0], 0.0)), store, load_on_startup=False)
    with TestClient(app) as c:
        r = c.post("/predict", json={"features": {"x0": 1e308, "x1": 1e308}})

    assert r.status_code == 200
    assert r.json()["probability"] == 1.0
    assert r.json()["decision"] == "deny"
    assert all(abs(f["contribution"]) < float("inf") for f in r.json()["factors"])


def test_value_outside_model_scale_is_400(store) -> None:
    app = create_app(ModelRegistry(build_model([1.0], 0.0, stds=[1e-3])), store, load_on_startup=False)
    with TestClient(app) as c:
        r = c.post("/predict", json={"features": {"x0": 1e308}})

    assert r.status_code == 400
    err = _error(r)
    assert err["code"] == "INVALID_VALUE"
    assert err["details"]["feature"] == "x0"


def test_unknown_envelope_field_is_422(client) -> None:
    r = client.post("/predict", json={"features": APPLICANT, "threshold": 0.1})

    assert r.status_code == 422
    assert _error(r)["code"] == "VALIDATION_ERROR"


def test_unknown_route_uses_error_payload(client) -> None:
    r = client.get("/nope")
    assert r.status_code == 404
    assert _error(r)["code"] == "NOT_FOUND"


# --- admin ---

def test_model_info(client) -> None:
    r = client.get("/admin/model")

    assert r.status_code == 200
    body = r.json()
    assert body["version"] == "credit_v1"
    assert body["generation"] == 1
    assert body["feature_names"] == ["income_k", "debt_to_income", "credit_utilization"]
    assert body["scaler"]["stds"] == [20.0, 0.1, 0.2]


def test_train_in_background_then_predict_with_new_model(empty_client, cluster_rows, store) -> None:
    payload = {
        "rows": [{"features": row.features.as_dict(), "label": row.label} for row in cluster_rows],
        "config": {"max_iterations": 200},
        "version_tag": "api",
    }
    r = empty_client.post("/admin/train", json=payload)
    assert r.status_code == 202
    job_id = r.json()["job_id"]

    empty_client.app.state.training_jobs.wait(job_id, timeout=30)

    status = empty_client.get(f"/admin/train/{job_id}").json()
    assert status["status"] == "succeeded"
    assert status["model_version"].startswith("logreg_api_")
    assert store.list_versions() == [status["model_version"]]

    r = empty_client.post("/predict", json={"features": {"a": 2.0, "b": 2.0}})
    assert r.status_code == 200
    assert r.json()["model_version"] == status["model_version"]
    assert r.json()["decision"] == "deny"


def test_train_with_mixed_schemas_is_400(client) -> None:
    payload = {
        "rows": [
            {"features": {"a": 1.0}, "label": 0},
            {"features": {"b": 2.0}, "label": 1},
        ]
    }
    r = client.post("/admin/train", json=payload)

    assert r.status_code == 400
    assert _error(r)["code"] == "SCHEMA_MISMATCH"


def test_train_rejects_bad_config(client) -> None:
    payload = {"rows": [{"features": {"a": 1.0}, "label": 0}], "config": {"learning_rate": -1}}
    assert client.post("/admin/train", json=payload).status_code == 422


def test_unknown_job_is_404(client) -> None:
    r = client.get("/admin/train/does-not-exist")
    assert r.status_code == 404
    assert _error(r)["code"] == "JOB_NOT_FOUND"


def test_admin_requires_key_when_configured(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "API_KEY", "secret")

    assert client.get("/admin/model").status_code == 401
    assert client.get("/admin/model", headers={"X-API-Key": "wrong"}).status_code == 401
    assert client.get("/admin/model", headers={"X-API-Key": "secret"}).status_code == 200
    assert client.get("/admin/model", headers={"Authorization": "Bearer secret"}).status_code == 200
    # le scoring reste public
    assert client.post("/predict", json={"features": APPLICANT}).status_code == 200


def test_rotated_admin_keys_are_all_accepted(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "API_KEY", "new-key, old-key")

    assert client.get("/admin/model", headers={"X-API-Key": "new-key"}).status_code == 200
    assert client.get("/admin/model", headers={"Authorization": "Bearer old-key"}).status_code == 200
    assert client.get("/admin/model", headers={"X-API-Key": "new-key, old-key"}).status_code == 401


def test_denied_admin_access_is_logged(client, monkeypatch, caplog) -> None:
    monkeypatch.setattr(settings, "API_KEY", "secret")

    with caplog.at_level(logging.WARNING, logger="creditrisk.security"):
        r = client.post("/admin/models/save", headers={"X-API-Key": "nope"})

    assert r.status_code == 401
    denied = [rec for rec in caplog.records if rec.name == "creditrisk.security"]
    assert denied and denied[0].path == "/admin/models/save"
    assert "invalid key" in denied[0].getMessage()


def test_admin_without_key_in_prod_is_misconfigured(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "API_KEY", "")
    monkeypatch.setattr(settings, "ENV", "prod")

    r = client.get("/admin/model")
    assert r.status_code == 500
    assert _error(r)["code"] == "SERVER_MISCONFIG"


def test_save_then_reload(client, store, example_model) -> None:
    r = client.post("/admin/models/save")
    assert r.status_code == 200
    assert r.json()["path"] == "credit_v1.joblib"

    client.app.state.registry.swap(example_model)

    r = client.post("/admin/models/reload", json={"name": "credit_v1"})
    assert r.status_code == 200
    assert r.json() == {
        "ok": True,
        "model_version": "credit_v1",
        "previous_version": "example_v1",
        "path": None,
    }
    assert client.app.state.registry.current().version == "credit_v1"


def test_reload_of_corrupt_bundle_keeps_active_model(client, store) -> None:
    store.models_dir.mkdir(parents=True)
    (store.models_dir / "broken.joblib").write_bytes(b"garbage")

    r = client.post("/admin/models/reload", json={"name": "broken"})

    assert r.status_code == 422
    assert _error(r)["code"] == "MODEL_FORMAT_ERROR"
    assert client.app.state.registry.current().version == "credit_v1"
    assert client.app.state.registry.generation == 1


def test_reload_from_empty_store_is_404(client) -> None:
    r = client.post("/admin/models/reload", json={})
    assert r.status_code == 404
    assert _error(r)["code"] == "MODEL_NOT_FOUND"

    r = client.post("/admin/models/reload", json={"name": "../etc/passwd"})
    assert r.status_code == 404


# --- startup ---

def test_startup_loads_latest_bundle(store, credit_model) -> None:
    store.save(credit_model)
    app = create_app(ModelRegistry(), store, load_on_startup=True)

    with TestClient(app) as c:
        r = c.get("/ready")

    assert r.status_code == 200
    assert r.json()["model_version"] == "credit_v1"


def test_startup_with_corrupt_bundle_is_degraded(store) -> None:
    store.models_dir.mkdir(parents=True)
    (store.models_dir / "broken.joblib").write_bytes(b"garbage")
    app = create_app(ModelRegistry(), store, load_on_startup=True)

    with TestClient(app) as c:
        assert c.get("/health").status_code == 200
        assert c.get("/ready").status_code == 503
