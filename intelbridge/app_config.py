"""
Typed application configuration for intelbridge.

Features:
  - Typed dataclass sections with defaults from :mod:`intelbridge.constants`
  - ``from_dict()`` / ``to_dict()`` for flat-dict I/O (``_debounce`` etc.)
  - ``from_file()`` for JSON config files
  - ``apply_env_overrides()`` overlay for INTELBRIDGE_* environment variables
  - Built-in validation with descriptive errors
  - Merge semantics: defaults -> file -> env -> runtime overrides

Usage::

    from intelbridge.app_config import BridgeConfig

    cfg = BridgeConfig.from_file("intelbridge.json")
    cfg.apply_env_overrides()

    errors = cfg.validate()
    if errors:
        raise ValueError(errors)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Tuple

from intelbridge.constants import (
    DEFAULT_CONTAINER_SELECTOR,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_MEDIA_SELECTOR,
    DEFAULT_METADATA_BASE_URL,
    DEFAULT_MIN_MEDIA_SIZE,
    DEFAULT_PREVIEW_LIMIT,
    DEFAULT_PREVIEW_VALUE_WIDTH,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TEXT_SELECTOR,
    DEFAULT_UPLOAD_FILENAME,
    PLACEHOLDER_PUBLIC_URL,
)

log = logging.getLogger("intelbridge.app_config")


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ScanConfig:
    """Host document contract and scan timing."""
    text_selector: str = DEFAULT_TEXT_SELECTOR
    media_selector: str = DEFAULT_MEDIA_SELECTOR
    container_selector: str = DEFAULT_CONTAINER_SELECTOR
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    min_media_size: int = DEFAULT_MIN_MEDIA_SIZE


@dataclass
class ServiceConfig:
    """Metadata extraction service."""
    base_url: str = DEFAULT_METADATA_BASE_URL
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    upload_filename: str = DEFAULT_UPLOAD_FILENAME


@dataclass
class OverlayConfig:
    """Detail overlay rendering."""
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    value_width: int = DEFAULT_PREVIEW_VALUE_WIDTH
    placeholder_url: str = PLACEHOLDER_PUBLIC_URL


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json_output: bool = False


# ---------------------------------------------------------------------------
# Field-key mappings  (section_attr, field_attr) <-> flat key
# ---------------------------------------------------------------------------

_KEY_TO_FIELD: Dict[str, Tuple[str, str]] = {
    "_textselector": ("scan", "text_selector"),
    "_mediaselector": ("scan", "media_selector"),
    "_containerselector": ("scan", "container_selector"),
    "_debounce": ("scan", "debounce_seconds"),
    "_minmediasize": ("scan", "min_media_size"),

    "_serviceurl": ("service", "base_url"),
    "_servicetimeout": ("service", "timeout"),
    "_uploadfilename": ("service", "upload_filename"),

    "_previewlimit": ("overlay", "preview_limit"),
    "_previewwidth": ("overlay", "value_width"),
    "_placeholderurl": ("overlay", "placeholder_url"),

    "_loglevel": ("logging", "level"),
    "_jsonlogs": ("logging", "json_output"),
}

_FIELD_TO_KEY: Dict[Tuple[str, str], str] = {v: k for k, v in _KEY_TO_FIELD.items()}

_ENV_TO_KEY: Dict[str, str] = {
    "INTELBRIDGE_TEXT_SELECTOR": "_textselector",
    "INTELBRIDGE_MEDIA_SELECTOR": "_mediaselector",
    "INTELBRIDGE_CONTAINER_SELECTOR": "_containerselector",
    "INTELBRIDGE_DEBOUNCE": "_debounce",
    "INTELBRIDGE_MIN_MEDIA_SIZE": "_minmediasize",
    "INTELBRIDGE_SERVICE_URL": "_serviceurl",
    "INTELBRIDGE_SERVICE_TIMEOUT": "_servicetimeout",
    "INTELBRIDGE_PREVIEW_LIMIT": "_previewlimit",
    "INTELBRIDGE_LOG_LEVEL": "_loglevel",
    "INTELBRIDGE_JSON_LOGS": "_jsonlogs",
}

FIELD_DESCRIPTIONS: Dict[str, str] = {
    "_textselector": "CSS selector for message text nodes.",
    "_mediaselector": "CSS selector for blob-backed media elements.",
    "_containerselector": "CSS selector for the message container receiving indicators.",
    "_debounce": "Seconds of quiet after the last document change before re-scanning.",
    "_minmediasize": "Declared width and height (px) from which media get an inline Analyze button.",
    "_serviceurl": "Base URL of the metadata extraction service.",
    "_servicetimeout": "Seconds before giving up on a metadata service request.",
    "_uploadfilename": "Filename sent with media uploads.",
    "_previewlimit": "Number of metadata fields shown in the preview card.",
    "_previewwidth": "Characters of each metadata value shown before truncation.",
    "_placeholderurl": "Public URL used for reverse image search links.",
    "_loglevel": "Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    "_jsonlogs": "Emit JSON structured logs?",
}


class ValidationError:
    """Single validation failure."""

    __slots__ = ("field", "message", "value")

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value

    def __repr__(self) -> str:
        return f"ValidationError({self.field!r}, {self.message!r})"

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


# ---------------------------------------------------------------------------
# BridgeConfig
# ---------------------------------------------------------------------------

@dataclass
class BridgeConfig:
    """Typed intelbridge configuration."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    _extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BridgeConfig":
        """Build a config from a flat dict; unknown keys land in ``_extra``."""
        cfg = cls()
        cfg.merge(d)
        return cfg

    @classmethod
    def from_file(cls, path: str) -> "BridgeConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for (section_attr, field_attr), key in _FIELD_TO_KEY.items():
            out[key] = getattr(getattr(self, section_attr), field_attr)
        out.update(self._extra)
        return out

    def merge(self, overrides: Dict[str, Any]) -> None:
        for key, value in overrides.items():
            mapping = _KEY_TO_FIELD.get(key)
            if mapping is None:
                self._extra[key] = value
                continue
            section_attr, field_attr = mapping
            _set_field(getattr(self, section_attr), field_attr, value)

    def apply_env_overrides(self) -> List[str]:
        """Read INTELBRIDGE_* environment variables and override matching fields.

        Returns a list of variables that were applied.
        """
        overridden: List[str] = []
        for env_var, key in _ENV_TO_KEY.items():
            raw = os.environ.get(env_var)
            if raw is None:
                continue
            section_attr, field_attr = _KEY_TO_FIELD[key]
            _set_field(getattr(self, section_attr), field_attr, raw)
            overridden.append(env_var)

        if overridden:
            log.info("Applied %d env-var override(s): %s",
                     len(overridden), ", ".join(overridden))
        return overridden

    def validate(self) -> List[ValidationError]:
        """Validate all fields. Returns a list of errors (empty = valid)."""
        errors: List[ValidationError] = []

        for key in ("_textselector", "_mediaselector", "_containerselector"):
            section_attr, field_attr = _KEY_TO_FIELD[key]
            if not str(getattr(getattr(self, section_attr), field_attr)).strip():
                errors.append(ValidationError(key, "Selector must not be empty"))

        if self.scan.debounce_seconds < 0:
            errors.append(ValidationError(
                "_debounce", "Must be >= 0", self.scan.debounce_seconds))
        if self.scan.min_media_size < 0:
            errors.append(ValidationError(
                "_minmediasize", "Must be >= 0", self.scan.min_media_size))

        if not self.service.base_url.startswith(("http://", "https://")):
            errors.append(ValidationError(
                "_serviceurl", "Must be an http(s) URL", self.service.base_url))
        if self.service.timeout <= 0:
            errors.append(ValidationError(
                "_servicetimeout", "Must be > 0 seconds", self.service.timeout))

        if self.overlay.preview_limit < 1:
            errors.append(ValidationError(
                "_previewlimit", "Must be >= 1", self.overlay.preview_limit))
        if self.overlay.value_width < 1:
            errors.append(ValidationError(
                "_previewwidth", "Must be >= 1", self.overlay.value_width))

        if self.logging.level.upper() not in (
            "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
        ):
            errors.append(ValidationError(
                "_loglevel", "Invalid log level", self.logging.level))

        return errors

    def summary(self) -> Dict[str, Any]:
        """Return a concise overview suitable for logging."""
        return {
            "text_selector": self.scan.text_selector,
            "media_selector": self.scan.media_selector,
            "debounce": self.scan.debounce_seconds,
            "service": self.service.base_url,
            "preview_limit": self.overlay.preview_limit,
            "extra_keys": len(self._extra),
        }


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _set_field(section: Any, field_attr: str, value: Any) -> None:
    """Coerce *value* to the target field's type and set it."""
    target_type: type = str
    for f in fields(section):
        if f.name == field_attr:
            # annotations are strings under ``from __future__ import annotations``
            target_type = {"bool": bool, "int": int, "float": float}.get(
                f.type if isinstance(f.type, str) else getattr(f.type, "__name__", ""),
                str)
            break

    if isinstance(value, str) and target_type is not str:
        value = _coerce(value, target_type)
    elif target_type is int and isinstance(value, float):
        value = int(value)
    elif target_type is float and isinstance(value, int) and not isinstance(value, bool):
        value = float(value)

    setattr(section, field_attr, value)


def _coerce(raw: str, target: type) -> Any:
    """Best-effort coercion from string to target type."""
    if target is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if target is int:
        try:
            return int(raw)
        except (ValueError, TypeError):
            return 0
    if target is float:
        try:
            return float(raw)
        except (ValueError, TypeError):
            return 0.0
    return raw
