"""
Test fixtures and configuration.
"""

import os

# Must be set before wallet_signin.config is imported
os.environ["EXPECTED_DOMAIN"] = "example.com"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["CHAIN_RPC_URLS"] = ""
os.environ.pop("APP_URL", None)

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from wallet_signin.exceptions import ContractCallFailed
from wallet_signin.services.chain_reader import ChainReader
from wallet_signin.services.signature_verifier import EIP1271_MAGIC_VALUE

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_message(
    address: str,
    nonce: str = "abc123",
    domain: str = "example.com",
    uri: str = "https://example.com",
    version: str = "1",
    chain_id: int = 1,
    issued_at: datetime = T0,
    expiration_time: Optional[datetime] = T0 + timedelta(seconds=300),
    not_before: Optional[datetime] = None,
    statement: Optional[str] = "Sign in to my RainbowKit app",
    request_id: Optional[str] = None,
    resources: Optional[List[str]] = None,
) -> str:
    """Builds EIP-4361 text in the reference layout."""
    message = f"{domain} wants you to sign in with your Ethereum account:\n{address}\n\n"
    if statement:
        message += f"{statement}\n"
    message += "\n"
    fields = [
        f"URI: {uri}",
        f"Version: {version}",
        f"Chain ID: {chain_id}",
        f"Nonce: {nonce}",
        f"Issued At: {iso(issued_at)}",
    ]
    if expiration_time:
        fields.append(f"Expiration Time: {iso(expiration_time)}")
    if not_before:
        fields.append(f"Not Before: {iso(not_before)}")
    if request_id is not None:
        fields.append(f"Request ID: {request_id}")
    if resources:
        fields.append("Resources:")
        fields.extend(f"- {resource}" for resource in resources)
    return message + "\n".join(fields)


def sign(raw: str, account) -> str:
    return Account.sign_message(encode_defunct(text=raw), private_key=account.key).signature.hex()


class FakeChainReader(ChainReader):
    """In-memory ChainReader: configurable code, EIP-1271 result, or failure."""

    def __init__(self, code: bytes = b"\x60\x80\x60\x40", result=EIP1271_MAGIC_VALUE, error: Exception | None = None, chains=(1,)):
        self.code = code
        self.result = result
        self.error = error
        self.chains = set(chains)
        self.calls: List[tuple] = []

    def supports_chain(self, chain_id: int) -> bool:
        return chain_id in self.chains

    def get_code(self, address: str, chain_id: int) -> bytes:
        self.calls.append(("get_code", address, chain_id))
        if self.error is not None:
            raise self.error
        return self.code

    def is_valid_signature(self, address: str, chain_id: int, message_hash: bytes, signature: bytes) -> bytes:
        self.calls.append(("is_valid_signature", address, chain_id, message_hash, signature))
        if isinstance(self.result, ContractCallFailed):
            raise self.result
        return self.result


@pytest.fixture
def signer():
    return Account.create("wallet-signin-tests")


@pytest.fixture
def other_signer():
    return Account.create("wallet-signin-tests-other")
