import logging
from datetime import datetime
from typing import Optional

from ..challenge_store import ChallengeStore
from ..exceptions import NonceAlreadyConsumed
from ..models.siwe_models import Accepted, Rejected, RejectReason, VerificationContext, VerificationResult
from .verifier import Verifier

logger = logging.getLogger(__name__)


class SignInService:
    """
    One sign-in attempt for a browser session: verify, then redeem the nonce.

    The nonce is only consumed after the verifier accepts, so a retryable
    VerificationUnavailable leaves the challenge in place for a retry, while
    an accepted message can be redeemed at most once.
    """

    def __init__(self, verifier: Verifier, challenge_store: ChallengeStore, expected_domain: str):
        self.verifier = verifier
        self.challenge_store = challenge_store
        self.expected_domain = expected_domain

    def sign_in(
        self, session_id: Optional[str], raw: str, signature: str, now: Optional[datetime] = None
    ) -> VerificationResult:
        session_nonce = self.challenge_store.current_nonce(session_id) if session_id else None
        context = VerificationContext(
            expected_domain=self.expected_domain,
            session_nonce=session_nonce,
            now=now,
        )
        result = self.verifier.verify(raw, signature, context)
        if not isinstance(result, Accepted):
            return result

        try:
            self.challenge_store.consume_nonce(session_id, expected_nonce=session_nonce)
        except NonceAlreadyConsumed as e:
            logger.warning(f"SIWE rejected: reason={RejectReason.NONCE_MISMATCH} address={result.address} ({e})")
            return Rejected(reason=RejectReason.NONCE_MISMATCH)
        return result
