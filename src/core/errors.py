"""User-facing errors raised by the subscription and query operations.

Every error carries the reply text in ``str(err)`` so the command surface can
return it verbatim.
"""

from __future__ import annotations


class SubscribeError(Exception):
    """Base class for recoverable, user-facing subscription errors."""


class UnknownRuleKind(SubscribeError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"Subscription rule [{kind}] does not exist")
        self.kind = kind


class InvalidLabel(SubscribeError):
    def __init__(self, label: str) -> None:
        super().__init__(f"{label} is not a valid id")
        self.label = label


class SubscriptionNotFound(SubscribeError):
    def __init__(self, label: str) -> None:
        super().__init__(f"Subscription {label} not found")
        self.label = label


class NotOwner(SubscribeError):
    def __init__(self, label: str) -> None:
        super().__init__(f"You are not the owner of subscription {label}")
        self.label = label


class DuplicateName(SubscribeError):
    def __init__(self, name: str, existing_id: int) -> None:
        super().__init__(f"Subscription name {name} is already used by #{existing_id}")
        self.name = name
        self.existing_id = existing_id


class ReservedPrefix(SubscribeError):
    def __init__(self, prefix: str) -> None:
        super().__init__(f"Subscription names cannot start with {prefix}")
        self.prefix = prefix


class NoChange(SubscribeError):
    def __init__(self) -> None:
        super().__init__("Nothing to modify")


class CorruptSubscription(SubscribeError):
    def __init__(self, label: str, kind: str) -> None:
        super().__init__(f"Subscription {label} is corrupt: rule [{kind}] does not exist")
        self.label = label
        self.kind = kind


class ConfigParseError(SubscribeError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"YAML parse error: {detail}")


class ConfigSchemaError(SubscribeError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid config: {detail}")
