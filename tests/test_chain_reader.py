import pytest

from wallet_signin.exceptions import ChainReadError
from wallet_signin.services.chain_reader import Web3ChainReader

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def test_supports_only_configured_chains():
    reader = Web3ChainReader({1: "http://127.0.0.1:9"}, timeout=1)
    assert reader.supports_chain(1)
    assert not reader.supports_chain(10143)


def test_unconfigured_chain_raises_chain_read_error():
    reader = Web3ChainReader({}, timeout=1)
    with pytest.raises(ChainReadError):
        reader.get_code(ADDRESS, 1)


def test_unreachable_rpc_raises_chain_read_error():
    # Nothing listens on the discard port
    reader = Web3ChainReader({1: "http://127.0.0.1:9"}, timeout=1)
    with pytest.raises(ChainReadError):
        reader.get_code(ADDRESS, 1)


def test_timeout_is_split_across_requests_of_one_check():
    reader = Web3ChainReader({1: "http://127.0.0.1:9"}, timeout=10)
    assert reader.request_timeout * Web3ChainReader.REQUESTS_PER_CHECK == 10
    assert reader.request_timeout == 5
