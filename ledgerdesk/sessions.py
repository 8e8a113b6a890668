"""
Session Module

Maps opaque session tokens to the Identity established at login. A session
ends on logout or after a period without activity.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
import secrets
import threading

from .credentials import Identity
from .errors import AuthenticationError
from .logging_config import get_logger, log_action


@dataclass
class Session:
    """Authenticated session"""
    token: str
    identity: Identity
    created_at: datetime
    expires_at: datetime
    
    def is_valid(self, now: datetime) -> bool:
        return self.expires_at > now


class SessionRegistry:
    """In-memory session store"""
    
    def __init__(self, timeout_minutes: int = 30,
                 clock: Optional[Callable[[], datetime]] = None):
        self.timeout = timedelta(minutes=timeout_minutes)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("ledgerdesk.sessions")
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
    
    def open(self, identity: Identity) -> Session:
        """Start a session for an authenticated identity"""
        now = self.clock()
        session = Session(
            token=secrets.token_urlsafe(32),
            identity=identity,
            created_at=now,
            expires_at=now + self.timeout
        )
        with self._lock:
            self._prune(now)
            self._sessions[session.token] = session
        log_action(
            self.logger, "info", "Session opened",
            user_id=identity.subject, action="open_session",
            extra={"kind": identity.kind.value}
        )
        return session
    
    def resolve(self, token: Optional[str]) -> Identity:
        """
        Identity behind a token, extending the session on use
        
        Raises:
            AuthenticationError: If the token is unknown or expired
        """
        now = self.clock()
        with self._lock:
            session = self._sessions.get(token or "")
            if session is None or not session.is_valid(now):
                if session is not None:
                    del self._sessions[session.token]
                raise AuthenticationError("Not logged in.")
            session.expires_at = now + self.timeout
            return session.identity
    
    def close(self, token: Optional[str]) -> bool:
        """End a session. Returns False if it did not exist."""
        with self._lock:
            session = self._sessions.pop(token or "", None)
        if session is None:
            return False
        log_action(
            self.logger, "info", "Session closed",
            user_id=session.identity.subject, action="close_session"
        )
        return True
    
    def count(self) -> int:
        return len(self._sessions)
    
    def _prune(self, now: datetime) -> None:
        """Drop expired sessions. Caller holds the lock."""
        expired = [token for token, s in self._sessions.items() if not s.is_valid(now)]
        for token in expired:
            del self._sessions[token]
