"""Subscription management: add, modify, remove, list and label resolution."""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.config_text import validate_config
from core.errors import (
    CorruptSubscription,
    DuplicateName,
    NoChange,
    NotOwner,
    ReservedPrefix,
    SubscriptionNotFound,
    UnknownRuleKind,
)
from core.labels import RESERVED_PREFIX, IdLabel, NameLabel, format_label, is_reserved_name, parse_label
from core.models import Subscription
from core.ports import SubscriptionStorePort
from core.registry import RuleRegistry

LOGGER = logging.getLogger(__name__)


class SubscriptionManager:
    """Owns the per-user invariants of subscriptions.

    Names are optional, unique per owner and may not start with the reserved
    prefix. Configs are validated by the kind's schema at write time, so the
    store only ever holds normalized values.
    """

    def __init__(self, registry: RuleRegistry, store: SubscriptionStorePort) -> None:
        self._registry = registry
        self._store = store

    def resolve_label(self, label: str, uid: str) -> Subscription:
        """Return the caller's subscription referenced by ``#<id>`` or name."""

        parsed = parse_label(label)
        if isinstance(parsed, IdLabel):
            subscription = self._store.get_subscription(parsed.id)
        elif isinstance(parsed, NameLabel):
            subscription = self._store.find_subscription(uid, parsed.name)
        else:  # pragma: no cover - Label is a closed union
            raise TypeError(f"Unsupported label: {parsed!r}")

        if subscription is None:
            raise SubscriptionNotFound(label)
        if subscription.uid != uid:
            raise NotOwner(label)
        return subscription

    def get(self, label: str, uid: str) -> Subscription:
        return self.resolve_label(label, uid)

    def add(self, uid: str, kind: str, raw_config: Any, name: Optional[str] = None) -> Subscription:
        """Create a subscription after validating kind, config and name."""

        rule = self._registry.lookup(kind)
        if rule is None:
            raise UnknownRuleKind(kind)
        config = validate_config(rule.config_schema, raw_config)
        if name:
            self._check_name(uid, name)

        subscription = self._store.create_subscription(uid, kind, config, name or None)
        LOGGER.info("Subscription %s [%s] added for %s", format_label(name, subscription.id), kind, uid)
        return subscription

    def modify(
        self,
        label: str,
        uid: str,
        new_name: Optional[str] = None,
        new_raw_config: Any = None,
        *,
        has_config: Optional[bool] = None,
    ) -> Subscription:
        """Rename and/or reconfigure a subscription.

        ``has_config`` distinguishes "set the config to null" from "leave it";
        by default a config is considered supplied when it is not ``None``.
        """

        subscription = self.resolve_label(label, uid)
        if has_config is None:
            has_config = new_raw_config is not None
        if not new_name and not has_config:
            raise NoChange()

        changes: dict[str, Any] = {}
        if new_name:
            if new_name != subscription.name:
                self._check_name(uid, new_name)
            changes["name"] = new_name
        if has_config:
            rule = self._registry.lookup(subscription.kind)
            if rule is None:
                raise CorruptSubscription(format_label(subscription.name, subscription.id), subscription.kind)
            changes["config"] = validate_config(rule.config_schema, new_raw_config)

        self._store.update_subscription(subscription.id, changes)
        LOGGER.info("Subscription %s modified (%s)", format_label(subscription.name, subscription.id), ", ".join(changes))
        return Subscription(
            id=subscription.id,
            uid=subscription.uid,
            name=changes.get("name", subscription.name),
            kind=subscription.kind,
            config=changes.get("config", subscription.config),
        )

    def remove(self, label: str, uid: str) -> Subscription:
        subscription = self.resolve_label(label, uid)
        self._store.delete_subscription(subscription.id)
        LOGGER.info("Subscription %s removed", format_label(subscription.name, subscription.id))
        return subscription

    def list(self, uid: str) -> list[Subscription]:
        return self._store.list_subscriptions(uid)

    def _check_name(self, uid: str, name: str) -> None:
        if is_reserved_name(name):
            raise ReservedPrefix(RESERVED_PREFIX)
        existing = self._store.find_subscription(uid, name)
        if existing is not None:
            raise DuplicateName(name, existing.id)
