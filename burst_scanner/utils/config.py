"""
Configuration management with INI files and environment overrides
"""

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from burst_scanner.config.scoring import ScoringConfig
from burst_scanner.core.exceptions import ConfigurationError

VALID_TIMEFRAMES = ("1m", "5m")

CONFIG_FILENAME = "scanner_config.ini"

# Environment variable -> [scoring] parameter
_SCORING_ENV_OVERRIDES = {
    "SCANNER_BURST_THRESHOLD": "burst_threshold",
    "SCANNER_VOLATILITY_THRESHOLD": "volatile_zscore",
    "SCANNER_VOLUME_SURGE_THRESHOLD": "volume_surge_min",
}


@dataclass
class ScannerConfig:
    """Scan loop configuration"""
    timeframe: str = "1m"
    # Symbols whose known 24h quote volume is below this are not scanned
    min_volume_24h: float = 500_000.0
    cache_ttl: float = 60.0
    max_workers: int = 4

    def __post_init__(self):
        if self.timeframe not in VALID_TIMEFRAMES:
            raise ConfigurationError(
                f"Invalid timeframe: {self.timeframe}. Must be one of {VALID_TIMEFRAMES}"
            )
        if self.min_volume_24h < 0:
            raise ConfigurationError(f"min_volume_24h must be >= 0, got {self.min_volume_24h}")
        if self.cache_ttl <= 0:
            raise ConfigurationError(f"cache_ttl must be > 0, got {self.cache_ttl}")
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")


@dataclass
class LoggingConfig:
    """Logging system configuration"""
    log_level: str = "INFO"
    log_dir: str = "logs"

    def __post_init__(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. "
                f"Must be one of {valid_levels}"
            )


class ConfigManager:
    """
    Manages scanner configuration from an INI file with environment overrides

    Priority: ENV > INI file > defaults. A missing INI file is not an error.
    """

    def __init__(self, config_dir: str = "configs", environ: Optional[Dict[str, str]] = None):
        self.config_dir = Path(config_dir)
        self._environ = os.environ if environ is None else environ
        self._parser = ConfigParser()
        self._parser.read(self.config_dir / CONFIG_FILENAME)

        self._scanner_config = self._load_scanner_config()
        self._scoring_config = self._load_scoring_config()
        self._logging_config = self._load_logging_config()

    def _env(self, name: str) -> Optional[str]:
        value = self._environ.get(name)
        return value if value not in (None, "") else None

    def _section(self, name: str) -> Dict[str, str]:
        return dict(self._parser[name]) if name in self._parser else {}

    def _load_scanner_config(self) -> ScannerConfig:
        """Load [scanner] section with SCANNER_* environment overrides"""
        section = self._section("scanner")

        def pick(key: str, default: str) -> str:
            return self._env(f"SCANNER_{key.upper()}") or section.get(key, default)

        try:
            return ScannerConfig(
                timeframe=pick("timeframe", "1m"),
                min_volume_24h=float(pick("min_volume_24h", "500000")),
                cache_ttl=float(pick("cache_ttl", "60")),
                max_workers=int(pick("max_workers", "4")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid [scanner] configuration: {e}") from e

    def _load_scoring_config(self) -> ScoringConfig:
        """Load [scoring] section through the pydantic parameter schema"""
        params = self._section("scoring")
        for env_name, key in _SCORING_ENV_OVERRIDES.items():
            value = self._env(env_name)
            if value is not None:
                params[key] = value

        try:
            validated = ScoringConfig.ParamSchema(**params)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid [scoring] configuration: {e}") from e
        return ScoringConfig.from_validated_params(validated)

    def _load_logging_config(self) -> LoggingConfig:
        """Load [logging] section with SCANNER_LOG_LEVEL override"""
        section = self._section("logging")
        return LoggingConfig(
            log_level=self._env("SCANNER_LOG_LEVEL") or section.get("log_level", "INFO"),
            log_dir=section.get("log_dir", "logs"),
        )

    @property
    def scanner_config(self) -> ScannerConfig:
        """Get scanner configuration"""
        return self._scanner_config

    @property
    def scoring_config(self) -> ScoringConfig:
        """Get scoring configuration"""
        return self._scoring_config

    @property
    def logging_config(self) -> LoggingConfig:
        """Get logging configuration"""
        return self._logging_config
