"""Loading of rule modules that contribute subscription kinds.

A rule module is any importable module with a ``setup(registry)`` function
that calls ``registry.register(...)``. Handles are collected so every kind a
module added can be disposed again on shutdown.
"""

from __future__ import annotations

import importlib
import logging
from typing import Iterable

from core.registry import RuleHandle, RuleRegistry

LOGGER = logging.getLogger(__name__)


class _RecordingRegistry:
    """Registry view handed to ``setup`` that remembers returned handles."""

    def __init__(self, registry: RuleRegistry) -> None:
        self._registry = registry
        self.handles: list[RuleHandle] = []

    def register(self, kind, filter, render, config_schema) -> RuleHandle:
        handle = self._registry.register(kind, filter, render, config_schema)
        self.handles.append(handle)
        return handle

    def __getattr__(self, name):
        return getattr(self._registry, name)


def load_rule_modules(registry: RuleRegistry, module_names: Iterable[str]) -> list[RuleHandle]:
    """Import each module and run its setup; broken modules are skipped."""

    handles: list[RuleHandle] = []
    for module_name in module_names:
        try:
            module = importlib.import_module(module_name)
        except Exception:
            LOGGER.exception("Failed to import rule module %s", module_name)
            continue

        setup = getattr(module, "setup", None)
        if not callable(setup):
            LOGGER.error("Rule module %s has no setup(registry) function", module_name)
            continue

        recording = _RecordingRegistry(registry)
        try:
            setup(recording)
        except Exception:
            LOGGER.exception("Rule module %s failed during setup", module_name)
            # Keep the registry consistent with what actually loaded.
            for handle in recording.handles:
                handle.dispose()
            continue
        handles.extend(recording.handles)
        LOGGER.info("Loaded rule module %s (%s kind(s))", module_name, len(recording.handles))
    return handles


def dispose_all(handles: Iterable[RuleHandle]) -> None:
    for handle in handles:
        handle.dispose()
