import hmac
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from ..models.siwe_models import RejectReason, SiweClaim


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def check_time_window(claim: SiweClaim, now: datetime) -> Optional[RejectReason]:
    """
    Checks the claim's Not Before / Expiration Time bounds against `now`.

    A claim carrying neither bound is always time-valid; any TTL policy has
    to be expressed by the issuer through Expiration Time.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if claim.not_before is not None and now < claim.not_before:
        return RejectReason.NOT_YET_VALID
    if claim.expiration_time is not None and now >= claim.expiration_time:
        return RejectReason.EXPIRED
    return None


def normalize_host(value: str) -> str:
    return value.strip().lower()


def domain_from_url(url: str) -> str:
    """Returns host[:port] of a relying party URL, e.g. https://App.example:8443/x -> app.example:8443."""
    parsed = urlparse(url.strip())
    host = parsed.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if host and parsed.port is not None:
        host = f"{host}:{parsed.port}"
    return host


def check_domain(domain: str, expected_domain: str) -> Optional[RejectReason]:
    """
    Exact match against the relying party's own domain. No wildcards or subdomains.

    Only the configured side is normalized; the signed domain must already be
    in canonical (lowercase) form.
    """
    expected = normalize_host(expected_domain or "")
    if not expected or domain != expected:
        return RejectReason.DOMAIN_MISMATCH
    return None


def check_nonce(nonce: str, session_nonce: Optional[str]) -> Optional[RejectReason]:
    # No challenge issued for this session counts as a mismatch
    if not session_nonce:
        return RejectReason.NONCE_MISMATCH
    if not hmac.compare_digest(nonce.encode("utf-8"), session_nonce.encode("utf-8")):
        return RejectReason.NONCE_MISMATCH
    return None
