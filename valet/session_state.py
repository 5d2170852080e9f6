"""
Per-session conversation state.

Multi-turn flows (the reminder am/pm wizard, note dictation) park their
pending state here, keyed by session id, so the console and any other
surface sharing the process never see each other's flows. Capability
should_handle checks only read this store; their execute functions own
the writes.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class PendingFlow:
    """One in-progress multi-turn flow."""
    owner: str                      # capability name that owns the next input
    data: Dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.time)


class SessionStore:
    """Thread-safe map of session id -> {flow name -> PendingFlow}."""

    def __init__(self):
        self._sessions: Dict[str, Dict[str, PendingFlow]] = {}
        self._lock = threading.Lock()

    def get_pending(self, session_id: str, flow: str) -> Optional[PendingFlow]:
        with self._lock:
            return self._sessions.get(session_id, {}).get(flow)

    def is_pending(self, session_id: str, flow: str) -> bool:
        return self.get_pending(session_id, flow) is not None

    def set_pending(self, session_id: str, flow: str, owner: str, **data) -> PendingFlow:
        pending = PendingFlow(owner=owner, data=dict(data))
        with self._lock:
            self._sessions.setdefault(session_id, {})[flow] = pending
        return pending

    def clear_pending(self, session_id: str, flow: str) -> Optional[PendingFlow]:
        with self._lock:
            flows = self._sessions.get(session_id)
            if not flows:
                return None
            pending = flows.pop(flow, None)
            if not flows:
                del self._sessions[session_id]
            return pending

    def end_session(self, session_id: str):
        """Drop every pending flow for a session (client went away)."""
        with self._lock:
            self._sessions.pop(session_id, None)

    def active_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)
