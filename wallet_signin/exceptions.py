class ConfigurationError(RuntimeError):
    """Raised when required server configuration is missing."""


class ParseError(ValueError):
    """Raised when a SIWE message is not well-formed."""


class NonceAlreadyConsumed(Exception):
    """Raised when a session's challenge is absent, replaced or already used."""


class ChainReadError(Exception):
    """Transport/RPC failure while reading chain state. Retryable."""


class ContractCallFailed(Exception):
    """The contract call completed but reverted or returned unusable output."""


class InvalidSessionToken(Exception):
    """Raised when a session token cannot be decoded or validated."""
