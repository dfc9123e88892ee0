"""Shared reply formatting helpers.

Keeping formatting here prevents drift between commands and keeps replies
consistent regardless of which command produced them.
"""

from __future__ import annotations

from typing import Iterable, Optional

from core.config_text import dump_config
from core.labels import format_label
from core.messages import CheckResult
from core.models import Subscription


def format_subscription(subscription: Subscription) -> str:
    """Return ``[kind] name#id``."""

    return f"[{subscription.kind}] {format_label(subscription.name, subscription.id)}"


def format_added(subscription: Subscription) -> str:
    return f"Added subscription {format_subscription(subscription)}"


def format_modified(before: Subscription, after: Subscription) -> str:
    renamed = f"=>{after.name}" if after.name != before.name else ""
    return f"Modified subscription {before.name or 'unnamed'}{renamed}#{before.id}"


def format_removed(subscription: Subscription) -> str:
    return f"Removed subscription {format_label(subscription.name, subscription.id)}"


def format_details(subscription: Subscription) -> str:
    """Kind, label and the config dumped back as YAML."""

    return f"Subscription {format_subscription(subscription)}\nConfig:\n{dump_config(subscription.config)}".rstrip()


def format_subscription_list(subscriptions: list[Subscription]) -> str:
    if not subscriptions:
        return "You have no subscriptions"
    lines = [
        f"{index}. {format_subscription(subscription)}"
        for index, subscription in enumerate(subscriptions, start=1)
    ]
    return f"You have {len(subscriptions)} subscription(s):\n" + "\n".join(lines)


def format_check_result(result: CheckResult) -> str:
    """Numbered notification list; ``*`` marks unread, ``.`` read."""

    if not result.messages:
        return "You have no subscribed messages"

    lines = []
    for index, (message, text) in enumerate(zip(result.messages, result.rendered), start=1):
        marker = "." if message.has_read else "*"
        kind_tag = "" if result.kind else f"[{message.kind}] "
        lines.append(f"{index}{marker} {kind_tag}{text}")

    header = f"You have {len(result.messages)} subscribed message(s):"
    if result.removed_count:
        header += f" (cleared {result.removed_count})"
    return header + "\n" + "\n".join(lines)


def format_rule_list(kinds: Iterable[str]) -> str:
    kinds = list(kinds)
    return f"There are {len(kinds)} subscription rule(s): " + ", ".join(f"[{kind}]" for kind in kinds)


def format_usage(prefix: str, error: Optional[str] = None) -> str:
    lines = [
        "subscribe - message subscriptions",
        f"{prefix}subscribe.add [-n name] <kind> [config]",
        f"{prefix}subscribe.modify <label> [-n name] [-c [config]]",
        f"{prefix}subscribe.remove <label>",
        f"{prefix}subscribe.query <label>",
        f"{prefix}subscribe.list",
        f"{prefix}subscribe.check [kind] [-c] [-r] [-G]  (alias {prefix}sc)",
        f"{prefix}subscribe.list-rules",
        "Config is YAML, taken verbatim after the kind (or -c); longer blocks go on the following lines.",
        "A label is either a subscription name or #<id>.",
    ]
    if error:
        lines.insert(0, error)
    return "\n".join(lines)
