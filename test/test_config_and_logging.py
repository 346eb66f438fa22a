import json
import logging
from pathlib import Path

from backoffice.config import ApiSettings, load_settings
from backoffice.logging_config import JsonFormatter, setup_logging


def test_defaults_when_environment_is_empty():
    settings = load_settings({})
    assert settings == ApiSettings()
    assert settings.approval_threshold == 10000.0
    assert settings.retry_attempts == 3
    assert settings.retry_backoff_ms == 300


def test_environment_overrides_and_bad_values():
    settings = load_settings({
        "BACKOFFICE_API_URL": "https://erp.example.co.mz/",
        "BACKOFFICE_RETRY_ATTEMPTS": "0",
        "BACKOFFICE_APPROVAL_THRESHOLD": "25000",
        "BACKOFFICE_API_TIMEOUT": "abc",
        "BACKOFFICE_CURRENCY": "  ",
    })
    assert settings.base_url == "https://erp.example.co.mz"
    assert settings.retry_attempts == 3
    assert settings.approval_threshold == 25000.0
    assert settings.timeout_seconds == 30
    assert settings.currency == "MZN"


def test_json_formatter_emits_one_object_per_record():
    record = logging.LogRecord("backoffice.purchases", logging.INFO, __file__, 1, "po_created po_id=%s", (4,), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["logger"] == "backoffice.purchases"
    assert payload["message"] == "po_created po_id=4"
    assert payload["level"] == "INFO"


def test_setup_logging_creates_dir(tmp_path: Path):
    logs = tmp_path / "logs"
    setup_logging(logs)
    assert logs.is_dir()
