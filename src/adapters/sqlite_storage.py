"""SQLite storage adapter.

Implements the core SubscriptionStorePort and MessageStorePort using a simple
SQLite database.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any, Iterable, Optional

from core.models import MessageFilter, SubscribedMessage, Subscription

_UPDATABLE_COLUMNS = {"name", "config"}


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies both store port contracts."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - subscribe_subscription: per-user subscriptions
        - subscribe_message: pending/read notifications
        """

        with self._connect() as conn:
            # Fields:
            # - id: auto-increment primary key, referenced as #<id> by users
            # - uid: platform-qualified owner id
            # - name: optional, unique per uid (enforced by the manager)
            # - kind: rule tag; not a foreign key, rules live in memory
            # - config: JSON-encoded normalized config
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscribe_subscription (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    uid TEXT NOT NULL,
                    name TEXT,
                    kind TEXT NOT NULL,
                    config TEXT
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscription_uid ON subscribe_subscription (uid)"
            )
            # Notifications are denormalized on purpose: kind is copied from the
            # subscription so later edits or removal do not affect them.
            # Fields:
            # - subscriber: uid of the subscription owner
            # - sender: uid of the message author
            # - guild: platform-qualified group id
            # - timestamp: message time in epoch milliseconds
            # - has_read: 0/1
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscribe_message (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subscriber TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    sender TEXT,
                    guild TEXT,
                    content TEXT,
                    timestamp INTEGER,
                    has_read INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_message_subscriber ON subscribe_message (subscriber, has_read)"
            )

    # Subscriptions

    def create_subscription(self, uid: str, kind: str, config: Any, name: Optional[str]) -> Subscription:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO subscribe_subscription (uid, name, kind, config) VALUES (?, ?, ?, ?)",
                (uid, name, kind, json.dumps(config)),
            )
            subscription_id = cur.lastrowid
        return Subscription(id=subscription_id, uid=uid, name=name, kind=kind, config=config)

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM subscribe_subscription WHERE id = ?",
                (subscription_id,),
            ).fetchone()
        return _subscription_from_row(row) if row else None

    def find_subscription(self, uid: str, name: str) -> Optional[Subscription]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM subscribe_subscription WHERE uid = ? AND name = ? ORDER BY id LIMIT 1",
                (uid, name),
            ).fetchone()
        return _subscription_from_row(row) if row else None

    def list_subscriptions(self, uid: str) -> list[Subscription]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM subscribe_subscription WHERE uid = ? ORDER BY id",
                (uid,),
            ).fetchall()
        return [_subscription_from_row(row) for row in rows]

    def list_subscriptions_for_uids(self, uids: Iterable[str]) -> list[Subscription]:
        """Return every subscription owned by any of ``uids`` in one query."""

        uid_list = sorted(set(uids))
        if not uid_list:
            return []
        placeholders = ", ".join("?" for _ in uid_list)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM subscribe_subscription WHERE uid IN ({placeholders}) ORDER BY id",
                uid_list,
            ).fetchall()
        return [_subscription_from_row(row) for row in rows]

    def update_subscription(self, subscription_id: int, changes: dict[str, Any]) -> None:
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update subscription column(s): {', '.join(sorted(unknown))}")
        if not changes:
            return

        values = {
            column: json.dumps(value) if column == "config" else value
            for column, value in changes.items()
        }
        assignments = ", ".join(f"{column} = ?" for column in values)
        with self._connect() as conn:
            conn.execute(
                f"UPDATE subscribe_subscription SET {assignments} WHERE id = ?",
                (*values.values(), subscription_id),
            )

    def delete_subscription(self, subscription_id: int) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM subscribe_subscription WHERE id = ?",
                (subscription_id,),
            )
            return cur.rowcount

    # Notifications

    def create_message(
        self,
        *,
        subscriber: str,
        kind: str,
        sender: str,
        guild: str,
        content: str,
        timestamp: int,
    ) -> SubscribedMessage:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO subscribe_message (
                    subscriber,
                    kind,
                    sender,
                    guild,
                    content,
                    timestamp,
                    has_read
                ) VALUES (?, ?, ?, ?, ?, ?, 0)
                """,
                (subscriber, kind, sender, guild, content, timestamp),
            )
            message_id = cur.lastrowid
        return SubscribedMessage(
            id=message_id,
            subscriber=subscriber,
            kind=kind,
            sender=sender,
            guild=guild,
            content=content,
            timestamp=timestamp,
            has_read=False,
        )

    def query_messages(self, criteria: MessageFilter) -> list[SubscribedMessage]:
        """Return notifications matching all supplied criteria, oldest first."""

        clauses = ["subscriber = ?"]
        params: list[Any] = [criteria.subscriber]
        if criteria.kind is not None:
            clauses.append("kind = ?")
            params.append(criteria.kind)
        if criteria.guild is not None:
            clauses.append("guild = ?")
            params.append(criteria.guild)
        if not criteria.include_read:
            clauses.append("has_read = 0")

        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM subscribe_message WHERE {' AND '.join(clauses)} ORDER BY id",
                params,
            ).fetchall()
        return [_message_from_row(row) for row in rows]

    def mark_read(self, ids: Iterable[int]) -> int:
        id_list = list(ids)
        if not id_list:
            return 0
        placeholders = ", ".join("?" for _ in id_list)
        with self._connect() as conn:
            cur = conn.execute(
                f"UPDATE subscribe_message SET has_read = 1 WHERE id IN ({placeholders})",
                id_list,
            )
            return cur.rowcount

    def remove_messages(self, ids: Iterable[int]) -> int:
        """Delete notifications by id and return the number removed."""

        id_list = list(ids)
        if not id_list:
            return 0
        placeholders = ", ".join("?" for _ in id_list)
        with self._connect() as conn:
            cur = conn.execute(
                f"DELETE FROM subscribe_message WHERE id IN ({placeholders})",
                id_list,
            )
            return cur.rowcount


def _subscription_from_row(row: sqlite3.Row) -> Subscription:
    raw_config = row["config"]
    return Subscription(
        id=int(row["id"]),
        uid=row["uid"],
        name=row["name"],
        kind=row["kind"],
        config=json.loads(raw_config) if raw_config is not None else None,
    )


def _message_from_row(row: sqlite3.Row) -> SubscribedMessage:
    return SubscribedMessage(
        id=int(row["id"]),
        subscriber=row["subscriber"],
        kind=row["kind"],
        sender=row["sender"],
        guild=row["guild"],
        content=row["content"],
        timestamp=int(row["timestamp"]),
        has_read=bool(row["has_read"]),
    )
