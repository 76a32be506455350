import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from .. import config
from ..challenge_store import ChallengeStore
from ..exceptions import ConfigurationError
from ..models.auth_models import (
    ErrorResponse,
    NonceResponse,
    SessionResponse,
    SessionUser,
    VerifyRequest,
    VerifyResponse,
)
from ..models.siwe_models import Rejected
from ..services.chain_reader import Web3ChainReader
from ..services.sign_in import SignInService
from ..services.signature_verifier import SignatureVerifier
from ..services.verifier import Verifier
from ..session_issuer import JwtSessionIssuer, get_current_active_user, get_session_issuer

router = APIRouter(
    prefix="/auth",
    tags=["Authentication (SIWE)"],
)

logger = logging.getLogger(__name__)

# Shared, process-wide collaborators (overridable through app.dependency_overrides)
_challenge_store = ChallengeStore()
_chain_reader = (
    Web3ChainReader(config.CHAIN_RPC_URLS, timeout=config.CHAIN_READ_TIMEOUT_SECONDS)
    if config.CHAIN_RPC_URLS
    else None
)
_verifier = Verifier(SignatureVerifier(_chain_reader))

# Same message for every rejection, so clients cannot tell the checks apart
SIGN_IN_FAILED = "Sign-in failed."
SIGN_IN_UNAVAILABLE = "Sign-in temporarily unavailable. Please retry."


def get_challenge_store() -> ChallengeStore:
    return _challenge_store


def get_verifier() -> Verifier:
    return _verifier


def get_sign_in_service(
    store: ChallengeStore = Depends(get_challenge_store),
    verifier: Verifier = Depends(get_verifier),
) -> SignInService:
    try:
        expected_domain = config.get_expected_domain()
    except ConfigurationError as e:
        logger.error(f"SIWE domain binding is not configured: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server configuration error.")
    return SignInService(verifier, store, expected_domain)


# --- API Endpoints ---
@router.get("/nonce", response_model=NonceResponse)
def get_nonce(
    request: Request,
    response: Response,
    store: ChallengeStore = Depends(get_challenge_store),
):
    """
    Generates a nonce for the client to embed in its SIWE message.

    The nonce is bound to the caller's session cookie, which is created on
    first use. Requesting a new nonce replaces the previous one.
    """
    session_id = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
        response.set_cookie(
            config.SESSION_COOKIE_NAME,
            session_id,
            httponly=True,
            samesite="lax",
            secure=bool(config.APP_URL and config.APP_URL.startswith("https://")),
        )
    nonce = store.issue_nonce(session_id)
    return NonceResponse(nonce=nonce)


@router.post(
    "/verify",
    response_model=VerifyResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
)
def verify_signature(
    verify_request: VerifyRequest,
    request: Request,
    service: SignInService = Depends(get_sign_in_service),
    issuer: JwtSessionIssuer = Depends(get_session_issuer),
):
    """
    Verifies a signed SIWE message and returns a JWT access token upon success.

    - **message**: The exact SIWE message text the wallet signed.
    - **signature**: The hex-encoded signature string.
    """
    session_id = request.cookies.get(config.SESSION_COOKIE_NAME)
    result = service.sign_in(session_id, verify_request.message, verify_request.signature)

    if isinstance(result, Rejected):
        if result.retryable:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SIGN_IN_UNAVAILABLE)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=SIGN_IN_FAILED)

    try:
        access_token = issuer.issue(result.address)
    except ConfigurationError as e:
        logger.error(f"Cannot issue session: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server configuration error.")

    return VerifyResponse(address=result.address, access_token=access_token)


@router.get(
    "/session",
    response_model=SessionResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)
def get_session(current_user_address: str = Depends(get_current_active_user)):
    """Returns the address bound to the caller's bearer token."""
    return SessionResponse(address=current_user_address, user=SessionUser(name=current_user_address))
