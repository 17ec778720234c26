from __future__ import annotations

import pytest

from predicate_store.settings import Settings


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    monkeypatch.setenv("DDB_ENDPOINT_URL", "http://localhost:8000")
    monkeypatch.setenv("DDB_APP_MAX_ATTEMPTS", "4")

    s = Settings()

    assert s.aws_region == "eu-west-1"
    assert s.ddb_endpoint_url == "http://localhost:8000"
    assert s.ddb_app_max_attempts == 4


def test_log_safe_dict_hides_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAEXAMPLE")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "very-secret")

    safe = Settings().to_log_safe_dict()

    assert "very-secret" not in str(safe)
    assert "AKIAEXAMPLE" not in str(safe)
    assert safe["aws"]["aws_secret_access_key_configured"] is True


def test_production_rejects_local_endpoint(monkeypatch):
    monkeypatch.setenv("NODE_ENV", "prod")
    monkeypatch.setenv("DDB_ENDPOINT_URL", "http://localhost:8000")

    s = Settings()
    assert s.is_production
    with pytest.raises(RuntimeError):
        s.require_in_production()


def test_import_and_injected_store_work_under_invalid_production_env(monkeypatch, fake_store):
    import importlib

    import predicate_store
    from predicate_store import settings as settings_module

    monkeypatch.setenv("NODE_ENV", "production")
    monkeypatch.setenv("DDB_ENDPOINT_URL", "http://localhost:8000")

    # Loading the package must not validate the environment.
    importlib.reload(settings_module)
    assert not hasattr(settings_module, "settings")

    store = predicate_store.create_store(document_store=fake_store)
    store.insert("Users", {"userId": "u1"})
    assert store.query("Users", {"userId": "u1"}) == [{"userId": "u1"}]

    settings_module.get_settings.cache_clear()
    with pytest.raises(RuntimeError):
        settings_module.get_settings()
    settings_module.get_settings.cache_clear()
