"""Helpers for working with subscription labels.

A label is either ``#<id>`` or the owner's name for the subscription.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from core.errors import InvalidLabel

RESERVED_PREFIX = "#"


@dataclass(frozen=True)
class IdLabel:
    id: int


@dataclass(frozen=True)
class NameLabel:
    name: str


Label = Union[IdLabel, NameLabel]


def parse_label(raw: str) -> Label:
    """Split a user-supplied label into an id reference or a name reference."""

    if not raw.startswith(RESERVED_PREFIX):
        return NameLabel(raw)
    id_part = raw[len(RESERVED_PREFIX) :]
    if not id_part.isdigit():
        raise InvalidLabel(raw)
    return IdLabel(int(id_part))


def is_reserved_name(name: str) -> bool:
    return name.startswith(RESERVED_PREFIX)


def format_label(name: Optional[str], subscription_id: int) -> str:
    """Return the ``name#id`` form used in replies."""

    return f"{name or 'unnamed'}{RESERVED_PREFIX}{subscription_id}"
