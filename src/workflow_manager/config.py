"""Configuration management for workflow-manager using YAML files."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

from workflow_manager.negotiation import NegotiationRules
from workflow_manager.scheduler import DEFAULT_INTERVAL_SECONDS

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".workflow-manager"


class Config:
    """Configuration manager using YAML file storage.

    Local config lives in .workflow-manager/config.yaml under the current
    directory, global config in ~/.workflow-manager/config.yaml. Reads look
    in local config first, then fall back to global config.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
            self.is_global = use_global
        elif use_global:
            self.config_dir = Path.home() / CONFIG_DIR_NAME
            self.is_global = True
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
            self.is_global = False

        self.config_file = self.config_dir / "config.yaml"
        self._config: dict[str, Any] = self._read(self.config_file, strict=True)

        self._global_config: dict[str, Any] = {}
        if not self.is_global:
            self._global_config = self._read(Path.home() / CONFIG_DIR_NAME / "config.yaml", strict=False)

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    @staticmethod
    def _read(path: Path, strict: bool) -> dict[str, Any]:
        """Load one YAML file.

        Args:
            path: File to read
            strict: Raise on unreadable files instead of logging and ignoring them

        Returns:
            Configuration dictionary, empty when the file is missing
        """
        if not path.exists():
            logger.debug("Config file does not exist", path=str(path))
            return {}
        try:
            with open(path, "r") as f:
                config = yaml.safe_load(f) or {}
        except Exception as e:
            if not strict:
                logger.warning("Failed to load global config", error=str(e))
                return {}
            logger.error("Failed to load config", error=str(e))
            raise ValueError(f"Failed to load config from {path}: {e}") from e
        logger.debug("Config loaded successfully", path=str(path), keys=list(config.keys()))
        return config

    def _save(self) -> None:
        """Save configuration to YAML file."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
            logger.debug("Config saved successfully")
        except Exception as e:
            logger.error("Failed to save config", error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value, local first, then global."""
        if key in self._config:
            logger.debug("Getting config value from local", key=key)
            return self._config[key]
        if not self.is_global and key in self._global_config:
            logger.debug("Getting config value from global", key=key)
            return self._global_config[key]
        logger.debug("Config value not found", key=key)
        return default

    def set(self, key: str, value: str) -> None:
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, Any]:
        """List all settings; local values win over global ones."""
        if self.is_global:
            return self._config.copy()
        merged = self._global_config.copy()
        merged.update(self._config)
        logger.debug("Listing merged config values", count=len(merged))
        return merged


@dataclass(frozen=True)
class Settings:
    """Typed view of the configuration keys the application reads."""

    store_path: Path
    sweep_interval: float
    rules: NegotiationRules


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Config value for {key} must be true or false, got '{value}'")


def load_settings(config: Config) -> Settings:
    """Resolve configuration values into Settings, applying defaults."""
    store_path = Path(config.get("store.path") or (config.config_dir / "state.yaml"))

    raw_interval = config.get("scheduler.interval", DEFAULT_INTERVAL_SECONDS)
    try:
        interval = float(raw_interval)
    except (TypeError, ValueError):
        raise ValueError(f"Config value for scheduler.interval must be a number, got '{raw_interval}'") from None
    if interval <= 0:
        raise ValueError("Config value for scheduler.interval must be positive")

    rules = NegotiationRules(
        invite_during_transfer=_as_bool("rules.invite_during_transfer", config.get("rules.invite_during_transfer", True)),
        transfer_during_invite=_as_bool("rules.transfer_during_invite", config.get("rules.transfer_during_invite", True)),
    )
    settings = Settings(store_path=store_path, sweep_interval=interval, rules=rules)
    logger.debug("Settings resolved", store_path=str(store_path), sweep_interval=interval)
    return settings


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance.

    Args:
        use_global: If True, return global config. If False, return local config with global fallback.

    Returns:
        Config instance
    """
    return Config(use_global=use_global)
