"""Registry of subscription kinds contributed by rule modules.

Each kind is a tagged record of three operations: a filter predicate, a
renderer and a config schema. The dispatch and query code only ever sees the
tag and those operations, so new kinds can be added without touching them.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from core.models import ChatEvent, SubscribedMessage, Subscriber

LOGGER = logging.getLogger(__name__)

# (event, stored config, subscriber) -> does this message concern the subscriber
RuleFilter = Callable[[ChatEvent, Any, Subscriber], bool]
# (render context, notification) -> text, may be a coroutine
RuleRender = Callable[[Any, SubscribedMessage], Union[str, Awaitable[str]]]
# raw structured value -> normalized config, raises on malformed input
ConfigSchema = Callable[[Any], Any]


@dataclass(frozen=True, eq=False)
class RuleDefinition:
    """One registered subscription kind."""

    kind: str
    filter: RuleFilter
    render: RuleRender
    config_schema: ConfigSchema


class RuleHandle:
    """Disposable registration handle returned by ``RuleRegistry.register``.

    A handle only ever removes the definition it registered, so disposing a
    stale or inert handle never affects a later registration of the same kind.
    """

    def __init__(self, registry: "RuleRegistry", definition: Optional[RuleDefinition]) -> None:
        self._registry = registry
        self._definition = definition

    @property
    def active(self) -> bool:
        return self._definition is not None and self._registry.lookup(self._definition.kind) is self._definition

    def dispose(self) -> None:
        self._registry.deregister(self)


class RuleRegistry:
    """Process-wide mapping of kind tag to ``RuleDefinition``."""

    def __init__(self) -> None:
        self._rules: dict[str, RuleDefinition] = {}
        self._lock = threading.RLock()

    def register(
        self,
        kind: str,
        filter: RuleFilter,
        render: RuleRender,
        config_schema: ConfigSchema,
    ) -> RuleHandle:
        """Register a kind; the first registration wins until it is disposed."""

        with self._lock:
            if kind in self._rules:
                LOGGER.warning("Rule [%s] is already registered, ignoring", kind)
                return RuleHandle(self, None)
            definition = RuleDefinition(kind=kind, filter=filter, render=render, config_schema=config_schema)
            self._rules[kind] = definition
        LOGGER.info("Registered rule [%s]", kind)
        return RuleHandle(self, definition)

    def deregister(self, handle: RuleHandle) -> None:
        """Remove the handle's definition; repeated or inert calls do nothing."""

        definition = handle._definition
        if definition is None:
            return
        with self._lock:
            if self._rules.get(definition.kind) is not definition:
                return
            del self._rules[definition.kind]
        LOGGER.info("Deregistered rule [%s]", definition.kind)

    def lookup(self, kind: str) -> Optional[RuleDefinition]:
        with self._lock:
            return self._rules.get(kind)

    def is_known_kind(self, kind: str) -> bool:
        with self._lock:
            return kind in self._rules

    def kinds(self) -> list[str]:
        """Registered kinds in registration order."""

        with self._lock:
            return list(self._rules)
