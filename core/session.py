"""
Session Management

In-memory chat history and per-session state.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Any


class HistoryStore:
    """
    Chat history keyed by session id.

    Messages older than `retention_days` are pruned on every append, and
    sessions left with no messages lose their scratch state too.
    """

    def __init__(self, retention_days: int = 5):
        self.retention_days = max(1, int(retention_days))
        self._messages: Dict[str, List[Dict[str, Any]]] = {}
        self._state: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def append(
        self,
        role: str,
        content: str,
        session_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Record one message. role is "user" or "ai"."""
        entry = {
            "role": role,
            "content": content,
            "session_id": session_id,
            "metadata": dict(metadata or {}),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.cleanup_old_messages()
        with self._lock:
            self._messages.setdefault(session_id, []).append(entry)
        return entry

    def recent(self, session_id: str, limit: int = 50, max_age_days: int = 5) -> List[Dict[str, Any]]:
        """Newest `limit` messages within `max_age_days`, oldest first."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=max_age_days)
        with self._lock:
            messages = list(self._messages.get(session_id, []))
        fresh = [
            m for m in messages
            if datetime.fromisoformat(m["created_at"]) >= cutoff
        ]
        return fresh[-limit:] if limit > 0 else []

    def cleanup_old_messages(self) -> int:
        """
        Drop messages past the retention period.

        Returns:
            Number of messages removed.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=self.retention_days)
        removed = 0
        with self._lock:
            for session_id in list(self._messages):
                messages = self._messages[session_id]
                kept = [m for m in messages if datetime.fromisoformat(m["created_at"]) >= cutoff]
                removed += len(messages) - len(kept)
                if kept:
                    self._messages[session_id] = kept
                else:
                    del self._messages[session_id]
            for session_id in list(self._state):
                if not self._state[session_id] or session_id not in self._messages:
                    del self._state[session_id]
        return removed

    def get_state(self, session_id: str) -> Dict[str, Any]:
        """Mutable scratch state for a session (e.g. pending feature request)."""
        with self._lock:
            return self._state.setdefault(session_id, {})

    def clear_state(self, session_id: str, key: str) -> None:
        with self._lock:
            self._state.get(session_id, {}).pop(key, None)
