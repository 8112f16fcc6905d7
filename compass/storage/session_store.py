"""
In-memory session store.
This is the source of truth for conversation state: every message sent to
the model, in order, per session id. Nothing is persisted; a restart
forgets every session.
"""

import asyncio
import logging
from collections import defaultdict

from compass.storage.models import Message

logger = logging.getLogger(__name__)


class SessionStore:
    """Append-only message history keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, list[Message]] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def append(self, session_id: str, messages: list[Message]):
        """Append messages to a session, creating it if needed."""
        history = self._sessions.setdefault(session_id, [])
        history.extend(messages)
        logger.debug(
            "Session %s: +%d messages (%d total)",
            session_id, len(messages), len(history),
        )

    def read(self, session_id: str | None) -> list[Message]:
        """Return a copy of the session's messages, or [] if unknown."""
        if not session_id:
            return []
        return list(self._sessions.get(session_id, []))

    def lock(self, session_id: str) -> asyncio.Lock:
        """Per-session lock; serializes phase calls on one session."""
        return self._locks[session_id]

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get_stats(self) -> dict:
        """Session and message counts for the stats endpoint."""
        by_role = {"system": 0, "user": 0, "assistant": 0}
        total = 0
        for history in self._sessions.values():
            total += len(history)
            for msg in history:
                by_role[msg.role] += 1
        return {
            "sessions": len(self._sessions),
            "messages": total,
            "system_messages": by_role["system"],
            "user_messages": by_role["user"],
            "assistant_messages": by_role["assistant"],
        }
