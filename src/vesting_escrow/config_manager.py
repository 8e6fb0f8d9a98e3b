"""
Vesting Escrow Configuration Manager

Centralized configuration management supporting:
- Environment-based configs (development/staging/production/testnet)
- Config file loading (YAML/JSON)
- Command-line override support
- Environment variable support (VESTING_*)
- Config validation
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .core.vesting_schedule import VestingTerms, build_terms

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "config"

ENV_PREFIX = "VESTING_"

# Values always kept as strings when read from the environment
ADDRESS_KEYS = {"beneficiary_owner", "beneficiary", "owner"}


class Environment(Enum):
    """Environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTNET = "testnet"


@dataclass
class EscrowConfig:
    """Escrow roles and schedule parameters"""
    beneficiary_owner: str = ""
    beneficiary: str = ""
    owner: str = ""
    start: int = 0
    end: int = 0
    vesting_period: int = 1
    initial_tokens: int = 0
    vesting_event_tokens: int = 0

    def validate(self):
        """Validate field types; schedule rules are enforced by VestingEscrow"""
        for name in ("beneficiary_owner", "beneficiary", "owner"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"Invalid {name}: must be an address string")
        for name in ("start", "end", "vesting_period", "initial_tokens", "vesting_event_tokens"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Invalid {name}: {value!r}. Must be an integer")


@dataclass
class LedgerConfig:
    """Token ledger metadata"""
    symbol: str = "TOKEN"
    decimals: int = 18

    def validate(self):
        if not self.symbol:
            raise ValueError("symbol cannot be empty")
        if not (0 <= self.decimals <= 18):
            raise ValueError(f"Invalid decimals: {self.decimals}. Must be between 0-18")


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    log_file: str = "logs/vesting_escrow.json"
    enable_console_logging: bool = True
    enable_file_logging: bool = False
    max_log_size: int = 10485760  # 10MB
    backup_count: int = 5

    def validate(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        if self.max_log_size < 1024:
            raise ValueError(f"Invalid max_log_size: {self.max_log_size}. Must be >= 1024")
        if self.backup_count < 0:
            raise ValueError(f"Invalid backup_count: {self.backup_count}. Must be >= 0")


def _build_section(cls, values: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**values)


class ConfigManager:
    """
    Configuration Manager

    Loads configuration from multiple sources with this precedence:
    1. Command-line arguments (highest priority)
    2. Environment variables (VESTING_*)
    3. Environment-specific config file
    4. Default config file
    5. Built-in defaults (lowest priority)
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 config_dir: Optional[str] = None,
                 cli_overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize Configuration Manager

        Args:
            environment: Environment name (development/staging/production/testnet)
            config_dir: Directory containing config files
            cli_overrides: Command-line overrides keyed by "section.key"
        """
        load_dotenv()

        self.environment = self._determine_environment(environment)
        self.config_dir = Path(config_dir).resolve() if config_dir else DEFAULT_CONFIG_DIR
        self.cli_overrides = cli_overrides or {}

        self.escrow: EscrowConfig = None
        self.ledger: LedgerConfig = None
        self.logging: LoggingConfig = None

        self._raw_config: Dict[str, Any] = {}

        self._load_configuration()

    def _determine_environment(self, environment: Optional[str]) -> Environment:
        """
        Priority:
        1. Passed environment parameter
        2. VESTING_ENVIRONMENT environment variable
        3. Default to DEVELOPMENT
        """
        if environment:
            env_str = environment.lower()
        else:
            env_str = os.getenv("VESTING_ENVIRONMENT", "development").lower()

        env_mapping = {
            "dev": Environment.DEVELOPMENT,
            "development": Environment.DEVELOPMENT,
            "staging": Environment.STAGING,
            "stage": Environment.STAGING,
            "prod": Environment.PRODUCTION,
            "production": Environment.PRODUCTION,
            "testnet": Environment.TESTNET,
            "test": Environment.TESTNET,
        }

        return env_mapping.get(env_str, Environment.DEVELOPMENT)

    def _load_configuration(self):
        """Load configuration from all sources with proper precedence"""
        default_config = self._load_config_file("default")
        env_config = self._load_config_file(self.environment.value)
        merged_config = self._merge_configs(default_config, env_config)
        merged_config = self._apply_env_variables(merged_config)
        merged_config = self._apply_cli_overrides(merged_config)

        self._raw_config = merged_config

        self._parse_configuration(merged_config)
        self._validate_configuration()

    def _load_config_file(self, filename: str) -> Dict[str, Any]:
        """
        Load configuration from YAML or JSON file

        Returns:
            Configuration dictionary (empty if no file exists)
        """
        yaml_path = self.config_dir / f"{filename}.yaml"
        if yaml_path.exists():
            with open(yaml_path, 'r') as f:
                return yaml.safe_load(f) or {}

        json_path = self.config_dir / f"{filename}.json"
        if json_path.exists():
            with open(json_path, 'r') as f:
                return json.load(f)

        return {}

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides (VESTING_*)

        Format: VESTING_SECTION_KEY=value

        Example:
        VESTING_ESCROW_START=1700000000
        VESTING_LOGGING_LEVEL=DEBUG
        """
        result = {key: dict(value) if isinstance(value, dict) else value for key, value in config.items()}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            if key == "VESTING_ENVIRONMENT":
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_")
            if len(parts) < 2:
                continue

            section = parts[0]
            config_key = "_".join(parts[1:])

            if section not in result or not isinstance(result[section], dict):
                result[section] = {}
            if section == "escrow" and config_key in ADDRESS_KEYS:
                result[section][config_key] = value
            else:
                result[section][config_key] = self._parse_env_value(value)

        return result

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse environment variable value to bool, int, float or str"""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def _apply_cli_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply command-line overrides keyed by "section.key" """
        result = config.copy()

        for key, value in self.cli_overrides.items():
            parts = key.split(".")

            if len(parts) == 1:
                result[key] = value
            elif len(parts) == 2:
                section, config_key = parts
                if section not in result or not isinstance(result[section], dict):
                    result[section] = {}
                else:
                    result[section] = dict(result[section])
                result[section][config_key] = value

        return result

    def _parse_configuration(self, config: Dict[str, Any]):
        """Parse configuration into typed objects"""
        self.escrow = _build_section(EscrowConfig, config.get("escrow") or {})
        self.ledger = _build_section(LedgerConfig, config.get("ledger") or {})
        self.logging = _build_section(LoggingConfig, config.get("logging") or {})

    def _validate_configuration(self):
        """Validate all configuration sections"""
        self.escrow.validate()
        self.ledger.validate()
        self.logging.validate()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key (e.g. "escrow.start")
        """
        parts = key.split(".")
        value = self._raw_config

        for part in parts:
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    def get_section(self, section: str) -> Optional[Dict[str, Any]]:
        """Get entire configuration section"""
        return self._raw_config.get(section)

    def vesting_terms(self) -> VestingTerms:
        """
        Validated schedule parameters of the configured escrow

        Raises:
            InvalidConfiguration: if the escrow section describes an invalid schedule
        """
        return build_terms(
            self.escrow.start,
            self.escrow.end,
            self.escrow.vesting_period,
            self.escrow.initial_tokens,
            self.escrow.vesting_event_tokens,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration to dictionary"""
        return {
            "environment": self.environment.value,
            "escrow": asdict(self.escrow),
            "ledger": asdict(self.ledger),
            "logging": asdict(self.logging),
        }

    def reload(self):
        """Reload configuration from files"""
        self._load_configuration()

    def __repr__(self) -> str:
        return f"ConfigManager(environment={self.environment.value})"


# Singleton instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(
    environment: Optional[str] = None,
    config_dir: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    force_reload: bool = False
) -> ConfigManager:
    """
    Get or create ConfigManager singleton instance
    """
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(
            environment=environment,
            config_dir=config_dir,
            cli_overrides=cli_overrides
        )

    return _config_manager
