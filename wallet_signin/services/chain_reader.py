from abc import ABC, abstractmethod
import logging
from typing import Dict

import requests
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from ..exceptions import ChainReadError, ContractCallFailed

logger = logging.getLogger(__name__)

# Minimal ABI for EIP-1271 smart contract wallets
EIP1271_CONTRACT_ABI = [
    {
        "inputs": [
            {"internalType": "bytes32", "name": "_hash", "type": "bytes32"},
            {"internalType": "bytes", "name": "_signature", "type": "bytes"},
        ],
        "name": "isValidSignature",
        "outputs": [{"internalType": "bytes4", "name": "", "type": "bytes4"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class ChainReader(ABC):
    """
    Read-only port onto chain state, used for contract-account signatures.

    Implementations raise ChainReadError when the read could not be completed
    (transport failure, RPC error, timeout) and ContractCallFailed when the
    call completed but the contract reverted or returned unusable output.
    """

    @abstractmethod
    def supports_chain(self, chain_id: int) -> bool:
        """Whether this reader can reach the given chain."""

    @abstractmethod
    def get_code(self, address: str, chain_id: int) -> bytes:
        """Returns deployed bytecode at `address`; empty for plain key accounts."""

    @abstractmethod
    def is_valid_signature(self, address: str, chain_id: int, message_hash: bytes, signature: bytes) -> bytes:
        """Calls isValidSignature(bytes32,bytes) on `address` and returns the raw bytes4 result."""


class Web3ChainReader(ChainReader):
    """
    ChainReader backed by web3.py HTTP providers, one per configured chain id.

    `timeout` bounds one whole contract-wallet check, which makes
    REQUESTS_PER_CHECK sequential requests (get_code, then isValidSignature);
    each request gets an equal share of it.
    """

    REQUESTS_PER_CHECK = 2

    def __init__(self, rpc_urls: Dict[int, str], timeout: float):
        self._rpc_urls = dict(rpc_urls)
        self.request_timeout = timeout / self.REQUESTS_PER_CHECK
        self._clients: Dict[int, Web3] = {}

    def supports_chain(self, chain_id: int) -> bool:
        return chain_id in self._rpc_urls

    def _client(self, chain_id: int) -> Web3:
        w3 = self._clients.get(chain_id)
        if w3 is None:
            rpc_url = self._rpc_urls.get(chain_id)
            if not rpc_url:
                raise ChainReadError(f"No RPC endpoint configured for chain {chain_id}")
            w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": self.request_timeout}))
            self._clients[chain_id] = w3
            logger.info(f"Created web3 client for chain {chain_id}")
        return w3

    def get_code(self, address: str, chain_id: int) -> bytes:
        w3 = self._client(chain_id)
        try:
            return bytes(w3.eth.get_code(Web3.to_checksum_address(address)))
        except (requests.exceptions.RequestException, Web3Exception, TimeoutError) as e:
            logger.warning(f"get_code failed for {address} on chain {chain_id}: {e}")
            raise ChainReadError(str(e)) from e

    def is_valid_signature(self, address: str, chain_id: int, message_hash: bytes, signature: bytes) -> bytes:
        w3 = self._client(chain_id)
        contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=EIP1271_CONTRACT_ABI)
        try:
            result = contract.functions.isValidSignature(message_hash, signature).call()
        except (ContractLogicError, BadFunctionCallOutput) as e:
            # Definitive answer from the contract, not a transport problem
            raise ContractCallFailed(str(e)) from e
        except (requests.exceptions.RequestException, Web3Exception, TimeoutError) as e:
            logger.warning(f"isValidSignature call failed for {address} on chain {chain_id}: {e}")
            raise ChainReadError(str(e)) from e
        return bytes(result)
