from datetime import datetime, timedelta, timezone
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from . import config
from .exceptions import ConfigurationError, InvalidSessionToken

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/verify")


class TokenData(BaseModel):
    sub: str  # verified account address


class JwtSessionIssuer:
    """Encodes a verified address into a signed, expiring JWT and reads it back."""

    def __init__(
        self,
        secret_key: str | None = config.JWT_SECRET_KEY,
        algorithm: str = config.JWT_ALGORITHM,
        expire_minutes: int = config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expire_minutes)

    def issue(self, address: str) -> str:
        if not self.secret_key:
            raise ConfigurationError("JWT_SECRET_KEY is not configured.")
        expire = datetime.now(timezone.utc) + self.expires_delta
        token = jwt.encode({"sub": address, "exp": expire}, self.secret_key, algorithm=self.algorithm)
        logger.info(f"JWT generated successfully for address: {address}")
        return token

    def read(self, token: str) -> str:
        """Returns the address a token was issued for."""
        if not self.secret_key:
            raise ConfigurationError("JWT_SECRET_KEY is not configured.")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return TokenData(sub=payload.get("sub")).sub
        except JWTError as e:
            raise InvalidSessionToken(f"JWT error: {e}") from e
        except ValidationError as e:
            raise InvalidSessionToken("Token payload missing 'sub' (address) claim.") from e


_session_issuer = JwtSessionIssuer()


def get_session_issuer() -> JwtSessionIssuer:
    return _session_issuer


async def get_current_active_user(
    token: str = Depends(oauth2_scheme),
    issuer: JwtSessionIssuer = Depends(get_session_issuer),
) -> str:
    """
    Dependency that verifies the JWT token from the Authorization header
    and returns the user's address (subject of the token).
    Raises HTTPException 401 if the token is invalid or expired.
    """
    try:
        return issuer.read(token)
    except InvalidSessionToken as e:
        logger.warning(f"Rejected session token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
