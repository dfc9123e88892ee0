"""Application entry point for the subscope watcher."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.commands import CommandRouter
from adapters.notification_formatting import format_rule_list
from adapters.rule_modules import dispose_all, load_rule_modules
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_mapper import build_caller, build_event
from adapters.telegram_platform import TelethonPlatform
from client import build_client
from core.config import DispatchConfig
from core.dispatch import DispatchEngine
from core.messages import MessageQueryEngine
from core.registry import RuleRegistry
from core.subscriptions import SubscriptionManager
from get_session import authorize

NAME = "SUBSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = [os.getenv(name) for name in redact_cfg.get("patterns", [])]
    return sorted({value for value in values if value}, key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/subscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
    if handlers:
        logging.basicConfig(level=level, handlers=handlers)


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting subscope")

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()

    registry = RuleRegistry()
    handles = load_rule_modules(registry, settings.RULE_MODULES)
    logger.info("%s subscription rule(s) registered", len(registry.kinds()))

    client = build_client()
    client.loop.run_until_complete(client.connect())
    client.loop.run_until_complete(authorize(client))

    platform = TelethonPlatform(client)
    dispatcher = DispatchEngine(
        registry=registry,
        subscriptions=storage,
        messages=storage,
        platform=platform,
        config=DispatchConfig(enabled=settings.DISPATCH_ENABLED, ordering=settings.DISPATCH_ORDERING),
    )
    router = CommandRouter(
        registry=registry,
        manager=SubscriptionManager(registry, storage),
        queries=MessageQueryEngine(registry, storage),
        platform=platform,
        prefix=settings.COMMAND_PREFIX,
    )

    # Fan-out runs before command handling so a notification exists before
    # anything later in the pipeline sees this message.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            message = event.message
            await dispatcher.handle(build_event(message))

            text = message.raw_text or ""
            if not router.is_command(text):
                return
            reply = await router.handle(build_caller(message), text)
            if reply:
                await event.reply(reply)
        except Exception:
            logger.exception("Error while processing message")

    client.start()
    logger.info("Client connected. Listening for incoming messages...")
    try:
        client.run_until_disconnected()
    finally:
        client.loop.run_until_complete(dispatcher.drain())
        dispose_all(handles)
        logger.info("Stopped subscope")


def _login() -> None:
    _print_banner()
    client = build_client()

    async def _run_login() -> None:
        await client.connect()
        await authorize(client)
        await client.disconnect()

    client.loop.run_until_complete(_run_login())


def _rules() -> None:
    _print_banner()
    registry = RuleRegistry()
    handles = load_rule_modules(registry, settings.RULE_MODULES)
    print(format_rule_list(registry.kinds()))
    dispose_all(handles)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="subscope")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    subparsers.add_parser("login", help="Log in and create the session file")
    subparsers.add_parser("rules", help="List subscription kinds from the configured rule modules")

    args = parser.parse_args(argv)
    if args.command == "login":
        _login()
        return
    if args.command == "rules":
        _configure_logging()
        _rules()
        return
    _run()


if __name__ == "__main__":
    main()
