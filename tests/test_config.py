import pytest

from ingestor.core.config import Config, IngestSettings
from ingestor.core.errors import ConfigurationError, SourceUnavailableError


def test_yaml_defaults(settings):
    assert settings.source_name == "morningstar"
    assert settings.timeout_seconds == 30.0
    assert settings.max_attempts == 3
    assert settings.mongo_db_name == "mutual_funds"
    assert settings.masters_collection == "mfSchemeTrackRecord"
    assert settings.snapshots_collection == "mfSchemeDataMonthwise"
    assert settings.cron_schedule == "0 2 1 * *"
    assert settings.cron_timezone == "Asia/Kolkata"
    assert settings.failure_rate_alert == 0.1


def test_environment_overrides(settings, monkeypatch):
    monkeypatch.setenv("SOURCE_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("SOURCE_RETRY_BASE_DELAY", "0.5")
    monkeypatch.setenv("CRON_ENABLED", "false")
    monkeypatch.setenv("MONGODB_DB_NAME", "mf_test")

    overridden = IngestSettings()

    assert overridden.max_attempts == 5
    assert overridden.retry_base_delay == 0.5
    assert overridden.cron_enabled is False
    assert overridden.mongo_db_name == "mf_test"


@pytest.mark.parametrize("name", ["MONGODB_URI", "MONGO_URI", "MONGODB_URL"])
def test_mongo_uri_aliases(settings, monkeypatch, name):
    monkeypatch.setenv(name, "mongodb://localhost:27017")

    assert IngestSettings().require_mongo_uri() == "mongodb://localhost:27017"


def test_missing_mongo_uri_is_a_configuration_error(settings):
    with pytest.raises(ConfigurationError) as excinfo:
        settings.require_mongo_uri()

    assert excinfo.value.as_dict()["details"] == {"key": "MONGODB_URI", "section": "mongodb"}


def test_require_source(settings):
    settings.require_source()
    settings.api_key = ""

    with pytest.raises(ConfigurationError):
        settings.require_source()


def test_config_get_nested_with_default():
    assert Config.get("scheduler", "timezone") == "Asia/Kolkata"
    assert Config.get("scheduler", "missing", default="x") == "x"
    assert Config.get("source", "name", "deeper", default=None) is None


def test_error_as_dict_carries_context():
    error = SourceUnavailableError("morningstar returned 503", source="morningstar", status_code=503)

    assert error.as_dict() == {
        "error_type": "SourceUnavailableError",
        "message": "morningstar returned 503",
        "fund_id": None,
        "phase": "fetch",
        "details": {"source": "morningstar", "status_code": 503},
    }
