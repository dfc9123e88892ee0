from __future__ import annotations

import pytest
from pydantic import BaseModel

from adapters.sqlite_storage import SQLiteStorage
from core.config_text import model_schema
from core.errors import (
    ConfigSchemaError,
    CorruptSubscription,
    DuplicateName,
    InvalidLabel,
    NoChange,
    NotOwner,
    ReservedPrefix,
    SubscriptionNotFound,
    UnknownRuleKind,
)
from core.registry import RuleRegistry
from core.subscriptions import SubscriptionManager


class KeywordConfig(BaseModel):
    words: list[str]
    case_sensitive: bool = False


def _setup(tmp_path):
    storage = SQLiteStorage(str(tmp_path / "subscope.db"))
    storage.init_db()
    registry = RuleRegistry()
    handle = registry.register(
        "keyword",
        lambda event, config, subscriber: True,
        lambda context, message: message.content,
        model_schema(KeywordConfig),
    )
    return SubscriptionManager(registry, storage), storage, handle


def test_add_normalizes_config_and_round_trips(tmp_path) -> None:
    manager, storage, _ = _setup(tmp_path)

    subscription = manager.add("telegram:a", "keyword", {"words": ["deploy"]}, name="ops")

    stored = storage.get_subscription(subscription.id)
    assert stored == subscription
    assert stored.config == {"words": ["deploy"], "case_sensitive": False}
    assert stored.name == "ops"


def test_add_rejects_unknown_kind_and_bad_config(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)

    with pytest.raises(UnknownRuleKind):
        manager.add("telegram:a", "nope", {})
    with pytest.raises(ConfigSchemaError):
        manager.add("telegram:a", "keyword", {"words": "not-a-list"})
    assert manager.list("telegram:a") == []


def test_add_rejects_reserved_prefix(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)

    with pytest.raises(ReservedPrefix):
        manager.add("telegram:a", "keyword", {"words": ["x"]}, name="#ops")


def test_duplicate_names_are_per_owner(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)
    first = manager.add("telegram:a", "keyword", {"words": ["x"]}, name="ops")

    with pytest.raises(DuplicateName) as excinfo:
        manager.add("telegram:a", "keyword", {"words": ["y"]}, name="ops")
    assert f"#{first.id}" in str(excinfo.value)

    other = manager.add("telegram:b", "keyword", {"words": ["y"]}, name="ops")
    assert other.uid == "telegram:b"


def test_unnamed_subscriptions_do_not_collide(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)

    manager.add("telegram:a", "keyword", {"words": ["x"]})
    manager.add("telegram:a", "keyword", {"words": ["y"]}, name="")

    assert [item.name for item in manager.list("telegram:a")] == [None, None]


def test_resolve_by_id_and_name_return_same_row(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)
    subscription = manager.add("telegram:a", "keyword", {"words": ["x"]}, name="ops")

    assert manager.resolve_label(f"#{subscription.id}", "telegram:a") == manager.resolve_label("ops", "telegram:a")


def test_resolve_label_errors(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)
    subscription = manager.add("telegram:a", "keyword", {"words": ["x"]}, name="ops")

    with pytest.raises(InvalidLabel):
        manager.resolve_label("#x", "telegram:a")
    with pytest.raises(SubscriptionNotFound):
        manager.resolve_label("#999", "telegram:a")
    with pytest.raises(SubscriptionNotFound):
        # Names are looked up within the caller's own subscriptions.
        manager.resolve_label("ops", "telegram:b")
    with pytest.raises(NotOwner):
        manager.resolve_label(f"#{subscription.id}", "telegram:b")


def test_modify_requires_a_change(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)
    manager.add("telegram:a", "keyword", {"words": ["x"]}, name="ops")

    with pytest.raises(NoChange):
        manager.modify("ops", "telegram:a")

    renamed = manager.modify("ops", "telegram:a", new_name="alerts")
    assert renamed.name == "alerts"
    assert renamed.config == {"words": ["x"], "case_sensitive": False}
    assert manager.resolve_label("alerts", "telegram:a").id == renamed.id


def test_modify_config_revalidates_with_current_schema(tmp_path) -> None:
    manager, storage, _ = _setup(tmp_path)
    subscription = manager.add("telegram:a", "keyword", {"words": ["x"]})

    updated = manager.modify(f"#{subscription.id}", "telegram:a", new_raw_config={"words": ["y"], "case_sensitive": True})

    assert updated.config == {"words": ["y"], "case_sensitive": True}
    assert storage.get_subscription(subscription.id).config == updated.config
    with pytest.raises(ConfigSchemaError):
        manager.modify(f"#{subscription.id}", "telegram:a", new_raw_config={})


def test_modify_name_checks_prefix_and_duplicates(tmp_path) -> None:
    manager, _, _ = _setup(tmp_path)
    manager.add("telegram:a", "keyword", {"words": ["x"]}, name="ops")
    manager.add("telegram:a", "keyword", {"words": ["y"]}, name="alerts")

    with pytest.raises(ReservedPrefix):
        manager.modify("ops", "telegram:a", new_name="#1")
    with pytest.raises(DuplicateName):
        manager.modify("ops", "telegram:a", new_name="alerts")
    assert manager.modify("ops", "telegram:a", new_name="ops").name == "ops"


def test_orphaned_subscription_can_be_renamed_but_not_reconfigured(tmp_path) -> None:
    manager, _, handle = _setup(tmp_path)
    manager.add("telegram:a", "keyword", {"words": ["x"]}, name="ops")
    handle.dispose()

    with pytest.raises(CorruptSubscription):
        manager.modify("ops", "telegram:a", new_raw_config={"words": ["y"]})
    assert manager.modify("ops", "telegram:a", new_name="old").name == "old"


def test_remove_enforces_ownership(tmp_path) -> None:
    manager, storage, _ = _setup(tmp_path)
    subscription = manager.add("telegram:a", "keyword", {"words": ["x"]}, name="ops")

    with pytest.raises(NotOwner):
        manager.remove(f"#{subscription.id}", "telegram:b")

    removed = manager.remove("ops", "telegram:a")
    assert removed.id == subscription.id
    assert storage.get_subscription(subscription.id) is None
    assert manager.list("telegram:a") == []
