from pydantic import BaseModel, Field


class NonceResponse(BaseModel):
    nonce: str = Field(..., description="Unique nonce for the SIWE message.")


class VerifyRequest(BaseModel):
    message: str = Field(..., description="The exact SIWE message text that was signed.")
    signature: str = Field(..., description="The signature provided by the user's wallet.")


class VerifyResponse(BaseModel):
    status: str = "ok"
    address: str = Field(..., description="The verified Ethereum address of the user.")
    access_token: str = Field(..., description="JWT access token for subsequent authenticated requests.")
    token_type: str = Field("bearer", description="Type of the token (always 'bearer').")


class SessionUser(BaseModel):
    name: str


class SessionResponse(BaseModel):
    address: str
    user: SessionUser


class ErrorResponse(BaseModel):
    detail: str
