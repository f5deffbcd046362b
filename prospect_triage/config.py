"""Configuration helpers for the prospect triage tools."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PROSPECT_TRIAGE_CONFIG"
DEFAULT_STORE_CLASS = "prospect_triage.store.memory.InMemoryProspectStore"


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Configuration file '{file_path}' could not be parsed: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


def _section(config: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{name}' must be a mapping")
    return dict(value)


@dataclass
class TriageSettings:
    """Resolved settings for the store, the feed, and outreach hand-off."""

    store_class: str = DEFAULT_STORE_CLASS
    store_options: Dict[str, Any] = field(default_factory=dict)
    page_size: int = 50
    reconnect: Dict[str, Any] = field(default_factory=dict)
    channel: str = "whatsapp"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "TriageSettings":
        store = _section(config, "store")
        feed = _section(config, "feed")
        outreach = _section(config, "outreach")

        options = store.get("options") or {}
        if not isinstance(options, Mapping):
            raise ConfigurationError("Configuration field 'store.options' must be a mapping")

        try:
            page_size = int(feed.get("page_size", 50))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Configuration field 'feed.page_size' must be an integer") from exc
        if not 1 <= page_size <= 50:
            raise ConfigurationError("Configuration field 'feed.page_size' must be between 1 and 50")

        reconnect = feed.get("reconnect") or {}
        if not isinstance(reconnect, Mapping):
            raise ConfigurationError("Configuration field 'feed.reconnect' must be a mapping")

        channel = str(outreach.get("channel") or "whatsapp").strip()
        return cls(
            store_class=str(store.get("class") or DEFAULT_STORE_CLASS),
            store_options=dict(options),
            page_size=page_size,
            reconnect=dict(reconnect),
            channel=channel,
        )


def load_settings(
    path: Optional[str | Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> TriageSettings:
    """Load settings from ``path`` or ``$PROSPECT_TRIAGE_CONFIG``.

    Without either, an in-memory store is used so the tools can run offline.
    """

    environ = os.environ if environ is None else environ
    path = path or environ.get(CONFIG_ENV_VAR)
    if not path:
        LOGGER.info("No configuration file given - using the in-memory prospect store")
        return TriageSettings()
    return TriageSettings.from_mapping(load_configuration(path))


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigurationError",
    "DEFAULT_STORE_CLASS",
    "TriageSettings",
    "load_configuration",
    "load_settings",
]
