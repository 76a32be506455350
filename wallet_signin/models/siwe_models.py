from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class SiweClaim(BaseModel):
    """Structured, fully-validated content of an EIP-4361 message."""

    model_config = ConfigDict(frozen=True)

    scheme: Optional[str] = Field(None, description="Optional URI scheme shown before the domain.")
    domain: str = Field(..., description="Relying-party authority the signer was shown.")
    address: str = Field(..., description="EIP-55 checksummed account address.")
    statement: Optional[str] = None
    uri: str
    version: str
    chain_id: int
    nonce: str
    issued_at: datetime
    expiration_time: Optional[datetime] = None
    not_before: Optional[datetime] = None
    request_id: Optional[str] = None
    resources: Tuple[str, ...] = ()


class VerificationContext(BaseModel):
    """Caller-supplied facts a message is checked against."""

    model_config = ConfigDict(frozen=True)

    expected_domain: str
    session_nonce: Optional[str] = Field(None, description="Nonce issued to this session, None if no challenge exists.")
    now: Optional[datetime] = Field(None, description="Clock override; current UTC time when unset.")


class RejectReason(str, Enum):
    MALFORMED = "Malformed"
    EXPIRED = "Expired"
    NOT_YET_VALID = "NotYetValid"
    DOMAIN_MISMATCH = "DomainMismatch"
    NONCE_MISMATCH = "NonceMismatch"
    INVALID_SIGNATURE = "InvalidSignature"
    VERIFICATION_UNAVAILABLE = "VerificationUnavailable"

    def __str__(self):
        return self.value


class Accepted(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str


class Rejected(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: RejectReason

    @property
    def retryable(self) -> bool:
        return self.reason is RejectReason.VERIFICATION_UNAVAILABLE


VerificationResult = Union[Accepted, Rejected]
