"""SQLite persistence for conversations, agents and messages.

Three linked tables; every write is a single-row insert (plus the
conversation's `updated_at` bump). Foreign keys are enforced, and a
message's author must be an agent of the same conversation.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from loguru import logger

from .errors import DuplicateKeyError, ForeignKeyViolationError, NotFoundError, StoreError
from .states import Agent, Conversation, Message


_SCHEMA = """
CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    topic TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS agents (
    id TEXT PRIMARY KEY,
    conversation_id TEXT NOT NULL REFERENCES conversations(id),
    name TEXT NOT NULL,
    system_prompt TEXT NOT NULL,
    UNIQUE (id, conversation_id),
    UNIQUE (conversation_id, name)
);
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    conversation_id TEXT NOT NULL REFERENCES conversations(id),
    agent_id TEXT,
    agent_name TEXT,
    content TEXT NOT NULL,
    is_private INTEGER NOT NULL,
    timestamp INTEGER NOT NULL,
    FOREIGN KEY (agent_id, conversation_id) REFERENCES agents(id, conversation_id)
);
CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id, is_private, timestamp);
CREATE INDEX IF NOT EXISTS idx_messages_agent ON messages(agent_id, is_private, timestamp);
"""


def _integrity_error(e: sqlite3.IntegrityError, what: str) -> StoreError:
    text = str(e).upper()
    if "FOREIGN KEY" in text:
        return ForeignKeyViolationError(f"{what}: {e}")
    if "UNIQUE" in text or "PRIMARY KEY" in text:
        return DuplicateKeyError(f"{what}: {e}")
    return StoreError(f"{what}: {e}")


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        topic=row["topic"],
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        agent_id=row["agent_id"],
        agent_name=row["agent_name"],
        content=row["content"],
        is_private=bool(row["is_private"]),
        timestamp=int(row["timestamp"]),
    )


class ConversationStore:
    def __init__(self, db_path: str = ":memory:", check_same_thread: bool = True) -> None:
        self.db_path = str(db_path)
        self._in_transaction = False
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=check_same_thread)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON;")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot open conversation store at {self.db_path}: {e}") from e
        logger.debug(f"store_open | path={self.db_path}")

    def __enter__(self) -> "ConversationStore":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group several writes into one commit; nested use joins the outer one."""
        if self._in_transaction:
            yield
            return
        self._in_transaction = True
        try:
            with self._conn:
                yield
        finally:
            self._in_transaction = False

    def _insert(self, sql: str, params: tuple, what: str) -> None:
        try:
            with self.transaction():
                self._conn.execute(sql, params)
        except sqlite3.IntegrityError as e:
            raise _integrity_error(e, what) from e
        except sqlite3.Error as e:
            raise StoreError(f"{what}: {e}") from e

    def _query(self, sql: str, params: tuple) -> List[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    # -- writes ---------------------------------------------------------

    def create_conversation(self, id: str, topic: str, created_at: int, updated_at: int) -> None:
        self._insert(
            "INSERT INTO conversations (id, topic, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (id, topic, created_at, updated_at),
            f"create conversation {id}",
        )

    def create_agent(self, id: str, conversation_id: str, name: str, system_prompt: str) -> None:
        self._insert(
            "INSERT INTO agents (id, conversation_id, name, system_prompt) VALUES (?, ?, ?, ?)",
            (id, conversation_id, name, system_prompt),
            f"create agent {id}",
        )

    def create_message(
        self,
        id: str,
        conversation_id: str,
        agent_id: Optional[str],
        agent_name: Optional[str],
        content: str,
        is_private: bool,
        timestamp: int,
    ) -> None:
        self._insert(
            "INSERT INTO messages (id, conversation_id, agent_id, agent_name, content, is_private, timestamp)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)",
            (id, conversation_id, agent_id, agent_name, content, 1 if is_private else 0, timestamp),
            f"create message {id}",
        )

    def update_conversation_timestamp(self, id: str, updated_at: int) -> None:
        try:
            with self.transaction():
                cur = self._conn.execute(
                    "UPDATE conversations SET updated_at = MAX(updated_at, ?) WHERE id = ?",
                    (updated_at, id),
                )
        except sqlite3.Error as e:
            raise StoreError(f"update conversation {id}: {e}") from e
        if cur.rowcount == 0:
            raise NotFoundError(f"Conversation {id} not found")

    # -- reads ----------------------------------------------------------

    def get_conversation(self, id: str) -> Optional[Conversation]:
        """Conversation header only; use load_conversation for the full aggregate."""
        rows = self._query("SELECT * FROM conversations WHERE id = ?", (id,))
        return _row_to_conversation(rows[0]) if rows else None

    def list_conversations(self) -> List[Conversation]:
        rows = self._query("SELECT * FROM conversations ORDER BY updated_at DESC, rowid DESC", ())
        return [_row_to_conversation(r) for r in rows]

    def get_agents(self, conversation_id: str) -> List[Agent]:
        """Agents in creation order, without their private thoughts."""
        rows = self._query("SELECT * FROM agents WHERE conversation_id = ? ORDER BY rowid ASC", (conversation_id,))
        return [Agent(id=r["id"], name=r["name"], system_prompt=r["system_prompt"]) for r in rows]

    def get_public_messages(self, conversation_id: str) -> List[Message]:
        rows = self._query(
            "SELECT * FROM messages WHERE conversation_id = ? AND is_private = 0 ORDER BY timestamp ASC, rowid ASC",
            (conversation_id,),
        )
        return [_row_to_message(r) for r in rows]

    def get_private_messages(self, agent_id: str) -> List[Message]:
        rows = self._query(
            "SELECT * FROM messages WHERE agent_id = ? AND is_private = 1 ORDER BY timestamp ASC, rowid ASC",
            (agent_id,),
        )
        return [_row_to_message(r) for r in rows]

    def load_conversation(self, id: str) -> Optional[Conversation]:
        conversation = self.get_conversation(id)
        if conversation is None:
            return None
        conversation.agents = self.get_agents(id)
        for agent in conversation.agents:
            agent.private_thoughts = self.get_private_messages(agent.id)
        conversation.messages = self.get_public_messages(id)
        return conversation
