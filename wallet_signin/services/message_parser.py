"""
EIP-4361 (Sign-In with Ethereum) message parsing.

Turns the exact text a wallet signed into a SiweClaim. The parser makes no
trust decisions; it only guarantees that every returned claim is complete and
syntactically valid, and raises ParseError otherwise.
"""
import re
from datetime import datetime
from typing import List, Optional

from web3 import Web3

from ..exceptions import ParseError
from ..models.siwe_models import SiweClaim

HEADER_PATTERN = re.compile(
    r"^(?:(?P<scheme>[a-zA-Z][a-zA-Z0-9+\-.]*)://)?"
    r"(?P<domain>[^\s/?#]+) wants you to sign in with your Ethereum account:$"
)
ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
URI_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+\-.]*:\S+$")
NONCE_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
CHAIN_ID_PATTERN = re.compile(r"^[0-9]+$")
RFC3339_PATTERN = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?P<fraction>\.\d+)?"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})$"
)

SUPPORTED_VERSION = "1"

# (label, claim field, required) in the order the message must present them
_TAGGED_FIELDS = [
    ("URI", "uri", True),
    ("Version", "version", True),
    ("Chain ID", "chain_id", True),
    ("Nonce", "nonce", True),
    ("Issued At", "issued_at", True),
    ("Expiration Time", "expiration_time", False),
    ("Not Before", "not_before", False),
    ("Request ID", "request_id", False),
]
RESOURCES_LABEL = "Resources:"
RESOURCE_PREFIX = "- "


def parse_timestamp(value: str, label: str) -> datetime:
    """Parses RFC 3339 date-time text into an aware datetime."""
    match = RFC3339_PATTERN.match(value)
    if not match:
        raise ParseError(f"{label} is not a valid RFC 3339 date-time")
    # datetime only keeps microseconds
    fraction = (match.group("fraction") or "")[:7]
    offset = match.group("offset")
    if offset == "Z":
        offset = "+00:00"
    try:
        return datetime.fromisoformat(f"{match.group('base')}{fraction}{offset}")
    except ValueError as exc:
        raise ParseError(f"{label} is not a valid date-time: {exc}") from exc


def normalize_address(value: str) -> str:
    """Validates a hex account address and returns its EIP-55 form."""
    if not ADDRESS_PATTERN.match(value):
        raise ParseError("address must be 0x followed by 40 hex characters")
    hex_part = value[2:]
    is_mixed_case = hex_part != hex_part.lower() and hex_part != hex_part.upper()
    if is_mixed_case and not Web3.is_checksum_address(value):
        raise ParseError("address has an invalid EIP-55 checksum")
    return Web3.to_checksum_address(value)


def _check_uri(value: str, label: str) -> str:
    if not URI_PATTERN.match(value):
        raise ParseError(f"{label} must be an RFC 3986 URI")
    return value


def _convert(field: str, label: str, value: str):
    if field == "uri":
        return _check_uri(value, label)
    if field == "version":
        if value != SUPPORTED_VERSION:
            raise ParseError(f"unsupported Version '{value}'")
        return value
    if field == "chain_id":
        if not CHAIN_ID_PATTERN.match(value):
            raise ParseError("Chain ID must be a decimal integer")
        return int(value)
    if field == "nonce":
        if not NONCE_PATTERN.match(value):
            raise ParseError("Nonce must be alphanumeric")
        return value
    if field in ("issued_at", "expiration_time", "not_before"):
        return parse_timestamp(value, label)
    return value


def parse_message(raw: str) -> SiweClaim:
    """
    Parses raw SIWE message text into a SiweClaim.

    Accepts both the EIP-4361 reference layout (an extra blank line stands in
    for a missing statement) and the compact layout some wallets emit.

    Raises:
        ParseError: If the text is not a complete, well-formed SIWE message.
    """
    if not isinstance(raw, str):
        raise ParseError("message must be text")

    lines = raw.split("\n")
    if len(lines) < 4:
        raise ParseError("message is too short")

    header = HEADER_PATTERN.match(lines[0])
    if not header:
        raise ParseError("header does not match the SIWE grammar")

    address = normalize_address(lines[1])

    if lines[2] != "":
        raise ParseError("expected a blank line after the address")

    statement: Optional[str] = None
    index = 3
    if lines[3] == "":
        index = 4
    elif not lines[3].startswith("URI: "):
        statement = lines[3]
        if len(lines) < 5 or lines[4] != "":
            raise ParseError("expected a blank line after the statement")
        index = 5

    values = {}
    for label, field, required in _TAGGED_FIELDS:
        prefix = f"{label}: "
        if index < len(lines) and lines[index].startswith(prefix):
            values[field] = _convert(field, label, lines[index][len(prefix):])
            index += 1
        elif required:
            raise ParseError(f"missing required field '{label}'")

    resources: List[str] = []
    if index < len(lines) and lines[index] == RESOURCES_LABEL:
        index += 1
        while index < len(lines) and lines[index].startswith(RESOURCE_PREFIX):
            resources.append(_check_uri(lines[index][len(RESOURCE_PREFIX):], "resource"))
            index += 1

    if index != len(lines):
        raise ParseError(f"unexpected content on line {index + 1}")

    return SiweClaim(
        scheme=header.group("scheme"),
        domain=header.group("domain"),
        address=address,
        statement=statement,
        resources=tuple(resources),
        **values,
    )
