# wallet_signin/challenge_store.py

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

from siwe import generate_nonce

from . import config
from .exceptions import NonceAlreadyConsumed

logger = logging.getLogger(__name__)


class ChallengeStore:
    """
    In-memory, per-session SIWE challenges.

    Each session holds at most one live nonce. Issuing a new nonce replaces the
    previous one, and consuming checks-and-invalidates under a single lock so
    two concurrent sign-ins can never both redeem the same nonce.
    WARNING: State is lost on restart and not shared between processes.
    """

    def __init__(
        self,
        ttl_seconds: int = config.NONCE_EXPIRATION_SECONDS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        # session_id -> (nonce, issued_at)
        self._challenges: Dict[str, Tuple[str, datetime]] = {}

    def _is_expired(self, issued_at: datetime, now: datetime) -> bool:
        return now - issued_at > self.ttl

    def cleanup_expired_nonces(self) -> int:
        """Removes expired challenges and returns how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [
                session_id for session_id, (_, issued_at) in self._challenges.items()
                if self._is_expired(issued_at, now)
            ]
            for session_id in expired:
                del self._challenges[session_id]
        if expired:
            logger.debug(f"Removed {len(expired)} expired nonce(s)")
        return len(expired)

    def issue_nonce(self, session_id: str) -> str:
        self.cleanup_expired_nonces()
        nonce = generate_nonce()
        with self._lock:
            self._challenges[session_id] = (nonce, self._clock())
        logger.info("Issued SIWE nonce for session")
        logger.debug(f"Nonce {nonce} issued")
        return nonce

    def current_nonce(self, session_id: str) -> Optional[str]:
        """Returns the session's live nonce, or None if none was issued or it expired."""
        with self._lock:
            entry = self._challenges.get(session_id)
        if entry is None:
            return None
        nonce, issued_at = entry
        if self._is_expired(issued_at, self._clock()):
            return None
        return nonce

    def consume_nonce(self, session_id: str, expected_nonce: Optional[str] = None) -> None:
        """
        Invalidates the session's nonce.

        When `expected_nonce` is given, only that exact nonce is consumed; a
        nonce that was replaced in the meantime counts as already consumed.

        Raises:
            NonceAlreadyConsumed: If there is no live nonce to consume.
        """
        now = self._clock()
        with self._lock:
            entry = self._challenges.get(session_id)
            if entry is None:
                raise NonceAlreadyConsumed("No live challenge for this session.")
            nonce, issued_at = entry
            if expected_nonce is not None and nonce != expected_nonce:
                raise NonceAlreadyConsumed("Challenge was replaced before it could be used.")
            del self._challenges[session_id]
        if self._is_expired(issued_at, now):
            raise NonceAlreadyConsumed("Challenge expired before it could be used.")
        logger.info("SIWE nonce consumed for session")
