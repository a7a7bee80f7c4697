"""Configuration utilities for CardBox.

Settings are read from a JSON file whose path comes from the ``--config``
option or the ``CARDBOX_CONFIG`` environment variable. Every key is optional::

    {
        "analysis": {
            "qr_timeout": 10,
            "barcode_timeout": 20,
            "ocr_timeout": 30,
            "suppression": "cap",
            "issuer_profiles_path": "issuers.json"
        },
        "tracing": {"enabled": true, "sample_rate": 0.25}
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping

from cardbox.infrastructure.ai.text_recognizer import (
    DEFAULT_CHAR_WHITELIST,
    DEFAULT_LANGUAGES,
)

CONFIG_ENV_VAR = "CARDBOX_CONFIG"


class ConfigError(ValueError):
    """Raised for unreadable config files or invalid setting values."""


class SuppressionPolicy(str, Enum):
    """What happens to OCR numbers once a QR code or barcode was decoded."""

    CAP = "cap"  # keep a few as secondary alternatives
    CLEAR = "clear"  # drop them entirely


@dataclass(frozen=True)
class AnalysisSettings:
    """Tunables of the card analysis pipeline."""

    qr_timeout: float = 10.0
    barcode_timeout: float = 20.0
    ocr_timeout: float = 30.0
    qr_max_edge: int = 800
    barcode_min_short_edge: int = 1600
    barcode_max_long_edge: int = 4000
    barcode_inter_attempt_delay: float = 0.0
    ocr_languages: str = DEFAULT_LANGUAGES
    ocr_char_whitelist: str | None = DEFAULT_CHAR_WHITELIST
    secondary_numbers_limit: int = 2
    suppression: SuppressionPolicy = SuppressionPolicy.CAP
    issuer_profiles_path: str | None = None

    def __post_init__(self) -> None:
        for name in ("qr_timeout", "barcode_timeout", "ocr_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        for name in (
            "qr_max_edge",
            "barcode_min_short_edge",
            "barcode_max_long_edge",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.barcode_inter_attempt_delay < 0:
            raise ConfigError("barcode_inter_attempt_delay cannot be negative")
        if self.secondary_numbers_limit < 0:
            raise ConfigError("secondary_numbers_limit cannot be negative")

    @property
    def max_wait(self) -> float:
        """Upper bound of one analysis; the recognizers run concurrently."""
        return max(self.qr_timeout, self.barcode_timeout, self.ocr_timeout)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisSettings":
        """Build settings from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown analysis settings: {', '.join(sorted(unknown))}")

        values = dict(data)
        if "suppression" in values:
            try:
                values["suppression"] = SuppressionPolicy(values["suppression"])
            except ValueError as e:
                raise ConfigError(
                    f"suppression must be one of "
                    f"{', '.join(p.value for p in SuppressionPolicy)}"
                ) from e
        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigError(f"Invalid analysis settings: {e}") from e


@dataclass(frozen=True)
class TracingSettings:
    """OpenTelemetry settings of the HTTP API."""

    enabled: bool = False
    service_name: str = "cardbox-api"
    sample_rate: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.sample_rate <= 1.0:
            raise ConfigError("sample_rate must be between 0 and 1")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TracingSettings":
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigError(f"Unknown tracing settings: {', '.join(sorted(unknown))}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid tracing settings: {e}") from e


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load configuration from a JSON file.

    Args:
        path: Path to the JSON configuration file.

    Returns:
        A dictionary of configuration values.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")
    return data


def _config_section(path: str | Path, name: str) -> Dict[str, Any]:
    section = load_config(path).get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a JSON object")
    return section


def load_settings(path: str | Path | None = None) -> AnalysisSettings:
    """Load :class:`AnalysisSettings` from ``path`` or ``$CARDBOX_CONFIG``.

    Defaults are returned when neither is set.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return AnalysisSettings()
    section = _config_section(path, "analysis")
    settings = AnalysisSettings.from_mapping(section)

    # Relative issuer table paths are resolved next to the config file
    issuer_path = settings.issuer_profiles_path
    if issuer_path and not Path(issuer_path).is_absolute():
        resolved = str(Path(path).parent / issuer_path)
        settings = AnalysisSettings.from_mapping(
            {**section, "issuer_profiles_path": resolved}
        )
    return settings


def load_tracing_settings(path: str | Path | None = None) -> TracingSettings:
    """Load the ``tracing`` section from ``path`` or ``$CARDBOX_CONFIG``."""
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return TracingSettings()
    return TracingSettings.from_mapping(_config_section(path, "tracing"))


__all__ = [
    "AnalysisSettings",
    "CONFIG_ENV_VAR",
    "ConfigError",
    "SuppressionPolicy",
    "TracingSettings",
    "load_config",
    "load_settings",
    "load_tracing_settings",
]
