"""
Tests for ConfigManager: file layering, VESTING_* environment overrides
and command-line overrides.
"""

import json
import os

import pytest
import yaml

from vesting_escrow.config_manager import ConfigManager, Environment, get_config_manager
from vesting_escrow.core.escrow_exceptions import ConfigurationReason, InvalidConfiguration
from vesting_escrow.core.vesting_schedule import VestingTerms


@pytest.fixture(autouse=True)
def clean_vesting_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("VESTING_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "default.yaml").write_text(yaml.safe_dump({
        "escrow": {"start": 0, "end": 0, "vesting_period": 1},
        "logging": {"level": "INFO"},
    }))
    (tmp_path / "staging.yaml").write_text(yaml.safe_dump({
        "escrow": {"start": 100, "end": 400, "vesting_period": 50, "initial_tokens": 3},
    }))
    return tmp_path


def test_packaged_development_config():
    manager = ConfigManager(environment="development")
    assert manager.environment is Environment.DEVELOPMENT
    assert manager.vesting_terms() == VestingTerms(
        start=1000, end=2000, vesting_period=100, initial_tokens=10, vesting_event_tokens=5,
    )
    assert manager.logging.level == "DEBUG"
    assert manager.ledger.decimals == 18


def test_environment_aliases(config_dir):
    assert ConfigManager(environment="prod", config_dir=str(config_dir)).environment is Environment.PRODUCTION
    assert ConfigManager(environment="unknown", config_dir=str(config_dir)).environment is Environment.DEVELOPMENT


def test_environment_from_env_var(monkeypatch, config_dir):
    monkeypatch.setenv("VESTING_ENVIRONMENT", "staging")
    manager = ConfigManager(config_dir=str(config_dir))
    assert manager.environment is Environment.STAGING
    assert manager.escrow.start == 100


def test_environment_file_overrides_default(config_dir):
    manager = ConfigManager(environment="staging", config_dir=str(config_dir))
    assert manager.escrow.end == 400
    assert manager.escrow.initial_tokens == 3
    assert manager.logging.level == "INFO"


def test_json_config_fallback(tmp_path):
    (tmp_path / "testnet.json").write_text(json.dumps({"ledger": {"symbol": "TVEST"}}))
    manager = ConfigManager(environment="testnet", config_dir=str(tmp_path))
    assert manager.ledger.symbol == "TVEST"


def test_env_variables_override_files(monkeypatch, config_dir):
    monkeypatch.setenv("VESTING_ESCROW_VESTING_PERIOD", "25")
    monkeypatch.setenv("VESTING_ESCROW_BENEFICIARY", "0xabc")
    monkeypatch.setenv("VESTING_LOGGING_ENABLE_FILE_LOGGING", "false")
    manager = ConfigManager(environment="staging", config_dir=str(config_dir))
    assert manager.escrow.vesting_period == 25
    assert manager.escrow.beneficiary == "0xabc"
    assert manager.logging.enable_file_logging is False


def test_numeric_address_env_stays_string(monkeypatch, config_dir):
    monkeypatch.setenv("VESTING_ESCROW_OWNER", "1234567890")
    monkeypatch.setenv("VESTING_ESCROW_BENEFICIARY_OWNER", "42")
    manager = ConfigManager(environment="staging", config_dir=str(config_dir))
    assert manager.escrow.owner == "1234567890"
    assert manager.escrow.beneficiary_owner == "42"


def test_vesting_terms_validates_schedule(config_dir):
    manager = ConfigManager(
        environment="staging",
        config_dir=str(config_dir),
        cli_overrides={"escrow.vesting_period": 0},
    )
    with pytest.raises(InvalidConfiguration) as exc_info:
        manager.vesting_terms()
    assert exc_info.value.reason is ConfigurationReason.ZERO_VESTING_PERIOD


def test_vesting_terms_rejects_start_after_end(config_dir):
    manager = ConfigManager(
        environment="staging",
        config_dir=str(config_dir),
        cli_overrides={"escrow.start": 500, "escrow.end": 100},
    )
    with pytest.raises(InvalidConfiguration) as exc_info:
        manager.vesting_terms()
    assert exc_info.value.reason is ConfigurationReason.START_AFTER_END


def test_cli_overrides_win(monkeypatch, config_dir):
    monkeypatch.setenv("VESTING_ESCROW_START", "150")
    manager = ConfigManager(
        environment="staging",
        config_dir=str(config_dir),
        cli_overrides={"escrow.start": 200},
    )
    assert manager.escrow.start == 200
    assert manager.get("escrow.start") == 200


def test_unknown_key_rejected(config_dir):
    with pytest.raises(ValueError, match="Unknown EscrowConfig keys"):
        ConfigManager(environment="staging", config_dir=str(config_dir), cli_overrides={"escrow.cliff": 5})


def test_invalid_type_rejected(config_dir):
    with pytest.raises(ValueError, match="start"):
        ConfigManager(environment="staging", config_dir=str(config_dir), cli_overrides={"escrow.start": "soon"})


def test_invalid_log_level_rejected(config_dir):
    with pytest.raises(ValueError, match="log level"):
        ConfigManager(environment="staging", config_dir=str(config_dir), cli_overrides={"logging.level": "LOUD"})


def test_get_and_sections(config_dir):
    manager = ConfigManager(environment="staging", config_dir=str(config_dir))
    assert manager.get("escrow.missing", "fallback") == "fallback"
    assert manager.get_section("escrow")["vesting_period"] == 50
    exported = manager.to_dict()
    assert exported["environment"] == "staging"
    assert exported["escrow"]["start"] == 100
    assert repr(manager) == "ConfigManager(environment=staging)"


def test_reload_picks_up_changes(config_dir):
    manager = ConfigManager(environment="staging", config_dir=str(config_dir))
    (config_dir / "staging.yaml").write_text(yaml.safe_dump({"escrow": {"start": 120, "end": 400}}))
    manager.reload()
    assert manager.escrow.start == 120


def test_singleton(config_dir):
    first = get_config_manager(environment="staging", config_dir=str(config_dir), force_reload=True)
    assert get_config_manager() is first
    assert get_config_manager(force_reload=True) is not first
