"""
SIWE verification orchestrator.

Runs the checks in a fixed, fail-fast order so that malformed, stale,
foreign-domain and replayed messages are rejected before the possibly
network-bound signature check runs:

    parse -> time window -> domain -> nonce -> signature -> accept

Every outcome is returned as a typed VerificationResult; nothing raises past
Verifier.verify.
"""
import logging
import time
from typing import Optional

from ..exceptions import ParseError
from ..models.siwe_models import (
    Accepted,
    Rejected,
    RejectReason,
    SiweClaim,
    VerificationContext,
    VerificationResult,
)
from .message_parser import parse_message
from .signature_verifier import SignatureStatus, SignatureVerifier
from .validators import check_domain, check_nonce, check_time_window, utc_now

logger = logging.getLogger(__name__)

_SIGNATURE_REJECTIONS = {
    SignatureStatus.INVALID: RejectReason.INVALID_SIGNATURE,
    SignatureStatus.UNAVAILABLE: RejectReason.VERIFICATION_UNAVAILABLE,
}


class Verifier:
    def __init__(self, signature_verifier: SignatureVerifier):
        self.signature_verifier = signature_verifier

    def verify(self, raw: str, signature: str, context: VerificationContext) -> VerificationResult:
        """Returns Accepted(address) or Rejected(reason) for one sign-in attempt."""
        started = time.monotonic()
        claim: Optional[SiweClaim] = None

        try:
            claim = parse_message(raw)
        except ParseError as e:
            logger.debug(f"SIWE parse error: {e}")
            return self._reject(RejectReason.MALFORMED, claim, started)

        now = context.now or utc_now()
        reason = (
            check_time_window(claim, now)
            or check_domain(claim.domain, context.expected_domain)
            or check_nonce(claim.nonce, context.session_nonce)
        )
        if reason is not None:
            if reason is RejectReason.DOMAIN_MISMATCH:
                logger.warning(f"SIWE domain mismatch: expected '{context.expected_domain}', got '{claim.domain}'")
            return self._reject(reason, claim, started)

        signature_started = time.monotonic()
        try:
            status = self.signature_verifier.verify(raw, signature, claim.address, claim.chain_id)
        except Exception as e:
            # Never default-accept; an unexpected failure is reported as retryable
            logger.error(f"Unexpected error during SIWE signature verification: {e}", exc_info=True)
            status = SignatureStatus.UNAVAILABLE
        logger.debug(f"Signature verification took {(time.monotonic() - signature_started) * 1000:.0f}ms")

        if status is not SignatureStatus.VALID:
            return self._reject(_SIGNATURE_REJECTIONS[status], claim, started)

        logger.info(
            f"SIWE accepted: address={claim.address} domain={claim.domain} "
            f"chain_id={claim.chain_id} elapsed_ms={(time.monotonic() - started) * 1000:.0f}"
        )
        return Accepted(address=claim.address)

    @staticmethod
    def _reject(reason: RejectReason, claim: Optional[SiweClaim], started: float) -> Rejected:
        elapsed_ms = (time.monotonic() - started) * 1000
        if claim is None:
            logger.warning(f"SIWE rejected: reason={reason} elapsed_ms={elapsed_ms:.0f}")
        else:
            logger.warning(
                f"SIWE rejected: reason={reason} address={claim.address} domain={claim.domain} "
                f"chain_id={claim.chain_id} elapsed_ms={elapsed_ms:.0f}"
            )
        return Rejected(reason=reason)
