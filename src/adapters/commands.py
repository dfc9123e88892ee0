"""Text command surface for subscriptions.

Commands are plain chat messages. The first line holds the command and its
options (parsed with argparse). For ``add`` and ``modify -c`` everything after
the kind or the ``-c`` flag is config text and is passed to the YAML parser
untouched, as are any following lines.
"""

from __future__ import annotations

import argparse
import logging
import re
import shlex
from typing import Optional

from adapters.notification_formatting import (
    format_added,
    format_check_result,
    format_details,
    format_modified,
    format_removed,
    format_rule_list,
    format_subscription_list,
    format_usage,
)
from core.config_text import parse_config_text
from core.errors import SubscribeError
from core.messages import CheckAction, MessageQueryEngine
from core.models import Caller
from core.ports import PlatformPort
from core.registry import RuleRegistry
from core.render import RenderContext
from core.subscriptions import SubscriptionManager

LOGGER = logging.getLogger(__name__)

ALIASES = {"sc": "subscribe.check"}

# One shell-like word: a double-quoted string, a single-quoted string or a run
# of non-blank characters.
_WORD = re.compile(r"""\s*("(?:[^"\\]|\\.)*"|'[^']*'|\S+)""")

NAME_OPTIONS = {"-n", "--name"}
CONFIG_OPTIONS = {"-c", "--config"}


class CommandUsageError(Exception):
    """Raised instead of exiting when a command line does not parse."""


class _CommandParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CommandUsageError(f"{self.prog}: {message}")

    def exit(self, status: int = 0, message: Optional[str] = None) -> None:
        raise CommandUsageError(message or self.format_usage())


def _unquote(word: str) -> str:
    try:
        parts = shlex.split(word)
    except ValueError:
        return word
    return parts[0] if len(parts) == 1 else word


def split_leading_words(
    text: str,
    positionals: int,
    value_options: set[str],
    stop_options: frozenset[str] = frozenset(),
) -> tuple[list[str], str]:
    """Take option and positional words off the front of ``text``.

    Scanning stops once ``positionals`` positional words were taken and the
    next word is not a known option, or right after a word in
    ``stop_options``. Returns the words and the untouched remainder.
    """

    words: list[str] = []
    taken = 0
    position = 0
    while True:
        match = _WORD.match(text, position)
        if match is None:
            break
        word = match.group(1)
        if word in stop_options:
            words.append(word)
            position = match.end()
            break
        if word in value_options:
            words.append(word)
            position = match.end()
            value = _WORD.match(text, position)
            if value is not None:
                words.append(_unquote(value.group(1)))
                position = value.end()
            continue
        if taken >= positionals:
            break
        words.append(_unquote(word))
        taken += 1
        position = match.end()
    return words, text[position:].strip()


def _join_config(rest: str, body: str) -> str:
    return "\n".join(part for part in (rest, body) if part.strip())


def _build_parsers() -> dict[str, argparse.ArgumentParser]:
    parsers: dict[str, argparse.ArgumentParser] = {}

    add = _CommandParser(prog="subscribe.add", add_help=False)
    add.add_argument("kind")
    add.add_argument("-n", "--name")
    parsers["subscribe.add"] = add

    modify = _CommandParser(prog="subscribe.modify", add_help=False)
    modify.add_argument("label")
    modify.add_argument("-n", "--name")
    modify.add_argument("-c", "--config", action="store_true")
    parsers["subscribe.modify"] = modify

    for command in ("subscribe.remove", "subscribe.query"):
        parser = _CommandParser(prog=command, add_help=False)
        parser.add_argument("label")
        parsers[command] = parser

    for command in ("subscribe", "subscribe.list", "subscribe.list-rules"):
        parsers[command] = _CommandParser(prog=command, add_help=False)

    check = _CommandParser(prog="subscribe.check", add_help=False)
    check.add_argument("kind", nargs="?")
    check.add_argument("-c", "--clear", action="store_true")
    check.add_argument("-r", "--read", action="store_true")
    check.add_argument("-G", "--global", dest="all_guilds", action="store_true")
    parsers["subscribe.check"] = check

    return parsers


class CommandRouter:
    """Maps command text onto SubscriptionManager / MessageQueryEngine calls."""

    def __init__(
        self,
        registry: RuleRegistry,
        manager: SubscriptionManager,
        queries: MessageQueryEngine,
        platform: PlatformPort,
        prefix: str = "/",
    ) -> None:
        self._registry = registry
        self._manager = manager
        self._queries = queries
        self._platform = platform
        self._prefix = prefix
        self._parsers = _build_parsers()

    def is_command(self, text: str) -> bool:
        return self._split_command(text) is not None

    async def handle(self, caller: Caller, text: str) -> Optional[str]:
        """Run one command and return the reply text, or None if not a command."""

        split = self._split_command(text)
        if split is None:
            return None
        command, args_text, body = split

        try:
            argv, config_text = self._split_arguments(command, args_text, body)
            args = self._parsers[command].parse_args(argv)
            return await self._run(command, args, config_text, caller)
        except CommandUsageError as err:
            return format_usage(self._prefix, str(err).strip())
        except SubscribeError as err:
            LOGGER.info("Command %s failed for %s: %s", command, caller.uid, err)
            return str(err)

    def _split_command(self, text: str) -> Optional[tuple[str, str, str]]:
        if not text.startswith(self._prefix):
            return None
        head, _, body = text[len(self._prefix) :].partition("\n")
        words = head.split(None, 1)
        if not words:
            return None
        command = ALIASES.get(words[0], words[0])
        if command not in self._parsers:
            return None
        args_text = words[1] if len(words) > 1 else ""
        return command, args_text, body

    def _split_arguments(self, command: str, args_text: str, body: str) -> tuple[list[str], str]:
        """Return argparse words and the raw config text for this command."""

        if command == "subscribe.add":
            words, rest = split_leading_words(args_text, 1, NAME_OPTIONS)
            return words, _join_config(rest, body)

        if command == "subscribe.modify":
            words, rest = split_leading_words(args_text, 1, NAME_OPTIONS, frozenset(CONFIG_OPTIONS))
            if words and words[-1] in CONFIG_OPTIONS:
                return words, _join_config(rest, body)
            # Without -c there is no config; leftovers are reported by argparse.
            return words + rest.split(), ""

        try:
            return shlex.split(args_text), ""
        except ValueError as err:
            raise CommandUsageError(f"{command}: {err}") from err

    async def _run(self, command: str, args: argparse.Namespace, config_text: str, caller: Caller) -> str:
        uid = caller.uid

        if command == "subscribe":
            return format_usage(self._prefix)

        if command == "subscribe.add":
            raw_config = parse_config_text(config_text)
            subscription = self._manager.add(uid, args.kind, raw_config, name=args.name)
            return format_added(subscription)

        if command == "subscribe.modify":
            has_config = args.config and bool(config_text.strip())
            raw_config = parse_config_text(config_text) if has_config else None
            before = self._manager.resolve_label(args.label, uid)
            after = self._manager.modify(args.label, uid, new_name=args.name, new_raw_config=raw_config, has_config=has_config)
            return format_modified(before, after)

        if command == "subscribe.remove":
            return format_removed(self._manager.remove(args.label, uid))

        if command == "subscribe.query":
            return format_details(self._manager.get(args.label, uid))

        if command == "subscribe.list":
            return format_subscription_list(self._manager.list(uid))

        if command == "subscribe.check":
            action = CheckAction.CLEAR if args.clear else CheckAction.MARK_READ
            result = await self._queries.check(
                RenderContext(caller=caller, platform=self._platform),
                kind=args.kind,
                all_guilds=args.all_guilds,
                include_read=args.read,
                action=action,
            )
            return format_check_result(result)

        if command == "subscribe.list-rules":
            return format_rule_list(self._registry.kinds())

        raise CommandUsageError(f"unknown command {command}")
