from enum import Enum
import logging
from typing import Optional

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_account import Account
from eth_account.messages import defunct_hash_message, encode_defunct
from hexbytes import HexBytes
from web3 import Web3

from ..exceptions import ChainReadError, ContractCallFailed
from .chain_reader import ChainReader

logger = logging.getLogger(__name__)

EIP1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")
ECDSA_SIGNATURE_LENGTH = 65
# ERC-6492 wrapper: abi.encode(factory, factoryCalldata, signature) ++ this suffix
ERC6492_MAGIC_SUFFIX = bytes.fromhex("6492" * 16)


class SignatureStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    UNAVAILABLE = "unavailable"


def decode_signature(signature: str) -> Optional[bytes]:
    """Decodes a hex signature (with or without 0x). Returns None if it is not hex."""
    if not isinstance(signature, str) or not signature.strip():
        return None
    try:
        return bytes(HexBytes(signature.strip()))
    except (ValueError, TypeError):
        return None


def unwrap_erc6492(signature_bytes: bytes) -> Optional[bytes]:
    """Returns the inner signature of an ERC-6492 wrapped signature, or None if it is not wrapped."""
    if not signature_bytes.endswith(ERC6492_MAGIC_SUFFIX):
        return None
    _, _, inner = abi_decode(["address", "bytes", "bytes"], signature_bytes[: -len(ERC6492_MAGIC_SUFFIX)])
    return bytes(inner)


class SignatureVerifier:
    """
    Checks that the exact raw message text was signed by `address`.

    Plain key accounts are checked by EIP-191 signature recovery. When that
    does not match and a chain reader is available, the address is treated
    as a possible smart contract wallet and asked via EIP-1271.

    ERC-6492 wrapped signatures are unwrapped and checked via EIP-1271 when the
    wallet is already deployed. Counterfactual (not yet deployed) wallets are
    not supported and come back INVALID.
    """

    def __init__(self, chain_reader: Optional[ChainReader] = None):
        self.chain_reader = chain_reader

    def verify(self, raw_message: str, signature: str, address: str, chain_id: int) -> SignatureStatus:
        signature_bytes = decode_signature(signature)
        if not signature_bytes:
            logger.debug("Signature is not valid hex.")
            return SignatureStatus.INVALID

        expected = Web3.to_checksum_address(address)

        if len(signature_bytes) == ECDSA_SIGNATURE_LENGTH:
            recovered = self._recover(raw_message, signature_bytes)
            if recovered is not None and recovered == expected:
                return SignatureStatus.VALID

        return self._verify_contract_signature(raw_message, signature_bytes, expected, chain_id)

    def _recover(self, raw_message: str, signature_bytes: bytes) -> Optional[str]:
        try:
            recovered = Account.recover_message(encode_defunct(text=raw_message), signature=signature_bytes)
        except Exception as e:
            # eth_keys raises several exception types for malformed v/r/s values
            logger.debug(f"Signature recovery failed: {type(e).__name__}")
            return None
        return Web3.to_checksum_address(recovered)

    def _verify_contract_signature(
        self, raw_message: str, signature_bytes: bytes, address: str, chain_id: int
    ) -> SignatureStatus:
        if self.chain_reader is None:
            return SignatureStatus.INVALID
        if not self.chain_reader.supports_chain(chain_id):
            logger.warning(f"No chain reader for chain {chain_id}; contract wallet check skipped for {address}.")
            return SignatureStatus.INVALID

        try:
            inner_signature = unwrap_erc6492(signature_bytes)
        except DecodingError as e:
            logger.debug(f"Malformed ERC-6492 signature wrapper: {type(e).__name__}")
            return SignatureStatus.INVALID

        try:
            code = self.chain_reader.get_code(address, chain_id)
            if not code:
                if inner_signature is not None:
                    logger.info(f"ERC-6492 signature for undeployed wallet {address} on chain {chain_id} is not supported.")
                # Plain key account whose recovered signer did not match
                return SignatureStatus.INVALID

            message_hash = bytes(defunct_hash_message(text=raw_message))
            result = self.chain_reader.is_valid_signature(
                address, chain_id, message_hash, inner_signature if inner_signature is not None else signature_bytes
            )
        except ContractCallFailed as e:
            logger.info(f"EIP-1271 check rejected by contract {address} on chain {chain_id}: {e}")
            return SignatureStatus.INVALID
        except ChainReadError as e:
            logger.warning(f"EIP-1271 check unavailable for {address} on chain {chain_id}: {e}")
            return SignatureStatus.UNAVAILABLE

        if bytes(result) == EIP1271_MAGIC_VALUE:
            return SignatureStatus.VALID
        return SignatureStatus.INVALID
