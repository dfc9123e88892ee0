from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.config import DispatchConfig
from core.dispatch import DispatchEngine
from core.models import ChatEvent, Member, MessageFilter
from core.registry import RuleRegistry
from core.subscriptions import SubscriptionManager


class FakePlatform:
    def __init__(self, members: dict[str, list[str]]) -> None:
        self._members = members
        self.calls: list[str] = []

    async def get_guild_member_list(self, guild_id: str) -> list[Member]:
        self.calls.append(guild_id)
        return [Member(user_id=user_id) for user_id in self._members.get(guild_id, [])]


class FailingPlatform:
    async def get_guild_member_list(self, guild_id: str) -> list[Member]:
        raise ConnectionError("platform unavailable")


def _event(content: str = "hi", guild_id: Optional[str] = "g", sender: str = "b") -> ChatEvent:
    return ChatEvent(
        platform="telegram",
        sender_uid=f"telegram:{sender}",
        guild_id=guild_id,
        gid=f"telegram:{guild_id}" if guild_id else None,
        content=content,
        timestamp=1700000000000,
    )


def _setup(tmp_path, members=None, config: Optional[DispatchConfig] = None, platform=None):
    storage = SQLiteStorage(str(tmp_path / "subscope.db"))
    storage.init_db()
    registry = RuleRegistry()
    registry.register(
        "zero",
        lambda event, config, subscriber: True,
        lambda context, message: message.content,
        lambda raw: raw or {},
    )
    platform = platform or FakePlatform(members if members is not None else {"g": ["a", "b"]})
    engine = DispatchEngine(
        registry=registry,
        subscriptions=storage,
        messages=storage,
        platform=platform,
        config=config or DispatchConfig(),
    )
    return engine, SubscriptionManager(registry, storage), storage, registry, platform


def _messages(storage: SQLiteStorage, uid: str):
    return storage.query_messages(MessageFilter(subscriber=uid, include_read=True))


def test_member_subscription_receives_one_notification(tmp_path) -> None:
    engine, manager, storage, _, _ = _setup(tmp_path)
    manager.add("telegram:a", "zero", {})

    asyncio.run(engine.handle(_event()))

    [message] = _messages(storage, "telegram:a")
    assert message.subscriber == "telegram:a"
    assert message.sender == "telegram:b"
    assert message.guild == "telegram:g"
    assert message.kind == "zero"
    assert message.content == "hi"
    assert message.timestamp == 1700000000000
    assert message.has_read is False
    assert _messages(storage, "telegram:b") == []


def test_non_member_subscriptions_are_not_evaluated(tmp_path) -> None:
    engine, manager, storage, _, _ = _setup(tmp_path)
    manager.add("telegram:outsider", "zero", {})

    asyncio.run(engine.handle(_event()))

    assert _messages(storage, "telegram:outsider") == []


def test_private_messages_are_ignored(tmp_path) -> None:
    engine, manager, storage, _, platform = _setup(tmp_path)
    manager.add("telegram:a", "zero", {})

    asyncio.run(engine.handle(_event(guild_id=None)))

    assert platform.calls == []
    assert _messages(storage, "telegram:a") == []


def test_filter_receives_config_and_subscriber(tmp_path) -> None:
    engine, manager, storage, registry, _ = _setup(tmp_path)
    seen = []

    def keyword_filter(event, config, subscriber) -> bool:
        seen.append((config, subscriber.uid))
        return config["word"] in event.content

    registry.register("keyword", keyword_filter, lambda context, message: message.content, lambda raw: raw)
    manager.add("telegram:a", "keyword", {"word": "deploy"})
    manager.add("telegram:b", "keyword", {"word": "lunch"})

    created = asyncio.run(engine.dispatch(_event(content="deploy done")))

    assert created == 1
    assert sorted(seen, key=lambda item: item[1]) == [({"word": "deploy"}, "telegram:a"), ({"word": "lunch"}, "telegram:b")]
    assert [m.content for m in _messages(storage, "telegram:a")] == ["deploy done"]
    assert _messages(storage, "telegram:b") == []


def test_orphaned_subscription_is_inert(tmp_path) -> None:
    engine, manager, storage, registry, _ = _setup(tmp_path)
    handle = registry.register("temp", lambda e, c, s: True, lambda ctx, m: m.content, lambda raw: raw)
    manager.add("telegram:a", "temp", {})
    manager.add("telegram:a", "zero", {})
    handle.dispose()

    asyncio.run(engine.handle(_event()))

    assert [m.kind for m in _messages(storage, "telegram:a")] == ["zero"]


def test_disabled_dispatch_writes_nothing(tmp_path) -> None:
    engine, manager, storage, _, platform = _setup(tmp_path, config=DispatchConfig(enabled=False))
    manager.add("telegram:a", "zero", {})

    asyncio.run(engine.handle(_event()))

    assert platform.calls == []
    assert _messages(storage, "telegram:a") == []


def test_detached_ordering_completes_after_drain(tmp_path) -> None:
    engine, manager, storage, _, _ = _setup(tmp_path, config=DispatchConfig(ordering="detached"))
    manager.add("telegram:a", "zero", {})

    async def scenario() -> None:
        await engine.handle(_event())
        await engine.drain()

    asyncio.run(scenario())

    assert len(_messages(storage, "telegram:a")) == 1


def test_unknown_ordering_is_rejected() -> None:
    with pytest.raises(ValueError):
        DispatchConfig(ordering="later")


def test_notifications_survive_subscription_removal(tmp_path) -> None:
    engine, manager, storage, _, _ = _setup(tmp_path)
    subscription = manager.add("telegram:a", "zero", {}, name="all")

    asyncio.run(engine.handle(_event()))
    manager.remove("all", "telegram:a")

    [message] = _messages(storage, "telegram:a")
    assert message.kind == subscription.kind


def test_platform_failure_propagates(tmp_path) -> None:
    engine, manager, storage, _, _ = _setup(tmp_path, platform=FailingPlatform())
    manager.add("telegram:a", "zero", {})

    with pytest.raises(ConnectionError):
        asyncio.run(engine.handle(_event()))
    assert _messages(storage, "telegram:a") == []


def test_filter_failure_fails_event_but_keeps_written_rows(tmp_path) -> None:
    engine, manager, storage, registry, _ = _setup(tmp_path)

    def broken_filter(event, config, subscriber) -> bool:
        raise RuntimeError("filter exploded")

    registry.register("broken", broken_filter, lambda ctx, m: m.content, lambda raw: raw or {})
    manager.add("telegram:a", "zero", {})
    manager.add("telegram:b", "broken", {})

    with pytest.raises(RuntimeError):
        asyncio.run(engine.handle(_event()))

    [written] = _messages(storage, "telegram:a")
    assert written.kind == "zero"
    assert _messages(storage, "telegram:b") == []


def test_detached_failure_is_logged_and_forgotten(tmp_path, caplog) -> None:
    engine, manager, storage, _, _ = _setup(
        tmp_path,
        config=DispatchConfig(ordering="detached"),
        platform=FailingPlatform(),
    )
    manager.add("telegram:a", "zero", {})

    async def scenario() -> int:
        await engine.handle(_event())
        pending = engine.in_flight
        await engine.drain()
        return pending

    with caplog.at_level("ERROR", logger="core.dispatch"):
        pending = asyncio.run(scenario())

    assert pending == 1
    assert engine.in_flight == 0
    assert "Detached dispatch failed" in caplog.text
    assert _messages(storage, "telegram:a") == []
