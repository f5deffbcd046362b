"""Factory helpers for constructing stores, feeds, and controllers from settings."""
from __future__ import annotations

import importlib
from typing import Optional

from .backoff import Backoff, BackoffPolicy, Sleep
from .config import ConfigurationError, TriageSettings
from .feed import ProspectFeed
from .store.base import ProspectStore
from .triage import TriageController


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid store class path '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Store module '{module_name}' could not be imported: {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


def build_store(settings: TriageSettings) -> ProspectStore:
    """Instantiate the store class named in the settings. It is not connected yet."""

    store_cls = _load_class(settings.store_class)
    try:
        return store_cls(**settings.store_options)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for store '{settings.store_class}': {exc}") from exc


def build_feed(store: ProspectStore, settings: TriageSettings, *, sleep: Optional[Sleep] = None) -> ProspectFeed:
    backoff = Backoff(BackoffPolicy.from_config(settings.reconnect), sleep=sleep)
    return ProspectFeed(store, page_size=settings.page_size, backoff=backoff)


def build_controller(store: ProspectStore, feed: ProspectFeed, settings: TriageSettings) -> TriageController:
    return TriageController(store, feed.prospects, channel=settings.channel)
