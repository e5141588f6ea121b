"""
Pending authentications and per-session "code sent" flags.

A PendingAuthentication is created by the OAuth callback once the provider has
issued an access token, and consumed by the next code the user types into the
chat, whether that code matches or not.

Records are bound to a session when the callback state carried the session's
login ticket. Otherwise the record goes into a single unbound slot, which the
next code submitted by a session without a bound record consumes.

Everything is guarded by one lock, and expired entries are swept whenever a new
one is written. The critical sections never await, so the store can be shared
between an HTTP server and a chat adapter running on different threads or loops.
"""

import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from bot_auth.errors import MagicCodeMismatch, MissingPendingAuthentication
from bot_auth.providers import ProviderId

logger = logging.getLogger(__name__)

MAGIC_CODE_BYTES = 4


def generate_magic_code() -> str:
    """8 lowercase hex characters from 4 random bytes."""
    return secrets.token_hex(MAGIC_CODE_BYTES)


def generate_ticket() -> str:
    return secrets.token_urlsafe(12)


@dataclass
class PendingAuthentication:
    magic_code: str
    access_token: Any
    provider_id: ProviderId
    session_key: Optional[str] = None
    issued_at: float = field(default_factory=time.time)

    def expired(self, now: float, ttl: float) -> bool:
        return ttl > 0 and now - self.issued_at >= ttl

    def matches(self, submitted: str) -> bool:
        return secrets.compare_digest(
            submitted.strip().lower().encode(), self.magic_code.lower().encode()
        )


@dataclass
class _LoginAttempt:
    """A session that has been shown the login card and now expects a code."""

    ticket: str
    sent_at: float = field(default_factory=time.time)


class PendingAuthStore:
    """In-memory pending authentications keyed by session, with a TTL."""

    def __init__(self, ttl_seconds: float = 600, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._attempts: Dict[str, _LoginAttempt] = {}  # session_key -> attempt
        self._tickets: Dict[str, str] = {}  # ticket -> session_key
        self._bound: Dict[str, PendingAuthentication] = {}  # session_key -> pending
        self._unbound: Optional[PendingAuthentication] = None  # at most one live

    def _expired(self, issued_at: float, now: float) -> bool:
        return self.ttl_seconds > 0 and now - issued_at >= self.ttl_seconds

    def _drop_attempt(self, session_key: str) -> None:
        attempt = self._attempts.pop(session_key, None)
        if attempt is not None:
            self._tickets.pop(attempt.ticket, None)

    def _purge(self, now: float) -> int:
        # Caller holds the lock.
        removed = 0
        for key in [k for k, a in self._attempts.items() if self._expired(a.sent_at, now)]:
            self._drop_attempt(key)
            removed += 1
        for key in [k for k, p in self._bound.items() if p.expired(now, self.ttl_seconds)]:
            del self._bound[key]
            removed += 1
        if self._unbound is not None and self._unbound.expired(now, self.ttl_seconds):
            self._unbound = None
            removed += 1
        return removed

    # -- sentCode -----------------------------------------------------------

    def code_sent(self, session_key: str) -> bool:
        """True while the session is waiting for the user to type a magic code."""
        with self._lock:
            attempt = self._attempts.get(session_key)
            if attempt is None:
                return False
            if self._expired(attempt.sent_at, self._clock()):
                logger.info("Login attempt for session %s expired", session_key)
                self._drop_attempt(session_key)
                self._bound.pop(session_key, None)
                return False
            return True

    def mark_code_sent(self, session_key: str) -> str:
        """Record that the login card was shown; return the session's ticket."""
        with self._lock:
            now = self._clock()
            self._purge(now)
            self._drop_attempt(session_key)
            attempt = _LoginAttempt(ticket=generate_ticket(), sent_at=now)
            self._attempts[session_key] = attempt
            self._tickets[attempt.ticket] = session_key
            return attempt.ticket

    def session_for_ticket(self, ticket: Optional[str]) -> Optional[str]:
        if not ticket:
            return None
        with self._lock:
            return self._tickets.get(ticket)

    # -- pending authentications -------------------------------------------

    def store(
        self,
        access_token: Any,
        provider_id: ProviderId,
        session_key: Optional[str] = None,
    ) -> PendingAuthentication:
        """
        Mint a magic code and store a pending authentication.

        A bound record replaces any earlier one for the same session and restarts
        the session's attempt timer. An unbound record replaces the previous
        unbound one.
        """
        with self._lock:
            now = self._clock()
            self._purge(now)
            pending = PendingAuthentication(
                magic_code=generate_magic_code(),
                access_token=access_token,
                provider_id=provider_id,
                session_key=session_key,
                issued_at=now,
            )
            if session_key is not None:
                self._bound[session_key] = pending
                attempt = self._attempts.get(session_key)
                if attempt is not None:
                    attempt.sent_at = now
            else:
                self._unbound = pending
            return pending

    def claim(self, session_key: str, submitted: str) -> PendingAuthentication:
        """
        Consume the session's pending authentication.

        The session's bound record is used if there is one, otherwise the unbound
        record. Returns the record on a match. Raises MagicCodeMismatch or
        MissingPendingAuthentication otherwise. Either way the record and the
        session's attempt are cleared, so a code can be tried at most once.
        """
        with self._lock:
            now = self._clock()
            self._drop_attempt(session_key)
            pending = self._bound.pop(session_key, None)
            if pending is None:
                pending, self._unbound = self._unbound, None

            if pending is None or pending.expired(now, self.ttl_seconds):
                raise MissingPendingAuthentication(
                    f"no pending authentication for session {session_key}"
                )
            if not pending.matches(submitted):
                raise MagicCodeMismatch(f"wrong magic code for session {session_key}")
            return pending

    def clear(self, session_key: str) -> None:
        with self._lock:
            self._drop_attempt(session_key)
            self._bound.pop(session_key, None)

    def purge_expired(self) -> int:
        """Drop expired attempts and pending records. Returns how many were removed."""
        with self._lock:
            removed = self._purge(self._clock())
        if removed:
            logger.debug("Purged %d expired login entries", removed)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._bound) + (self._unbound is not None)
