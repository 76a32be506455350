import os
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .services.validators import domain_from_url

load_dotenv()

# Canonical URL of this relying party (SIWE domain binding)
# Falls back to NEXTAUTH_URL / VERCEL_URL so existing deployments keep working
APP_URL = os.getenv("APP_URL") or os.getenv("NEXTAUTH_URL") or (
    f"https://{os.getenv('VERCEL_URL')}" if os.getenv("VERCEL_URL") else None
)
# Explicit override, e.g. "localhost:3000"
EXPECTED_DOMAIN = os.getenv("EXPECTED_DOMAIN")

# JWT Settings
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "siwe_session")

# CORS, comma separated
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


def _int_from_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        print(f"Warning: Invalid {name} in .env file. Defaulting to {default}.")
        return default


JWT_ACCESS_TOKEN_EXPIRE_MINUTES = _int_from_env("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 30)
NONCE_EXPIRATION_SECONDS = _int_from_env("NONCE_EXPIRATION_SECONDS", 300)
# Budget for one contract-wallet check as a whole, split across its RPC requests
CHAIN_READ_TIMEOUT_SECONDS = _int_from_env("CHAIN_READ_TIMEOUT_SECONDS", 10)


def parse_chain_rpc_urls(raw: str | None) -> dict[int, str]:
    """Parses "1=https://rpc-a,10143=https://rpc-b" into {chain_id: url}."""
    urls: dict[int, str] = {}
    if not raw:
        return urls
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        chain_id, sep, url = entry.partition("=")
        if not sep or not url.strip():
            print(f"Warning: Ignoring malformed CHAIN_RPC_URLS entry '{entry}'.")
            continue
        try:
            urls[int(chain_id.strip())] = url.strip()
        except ValueError:
            print(f"Warning: Ignoring CHAIN_RPC_URLS entry with non-numeric chain id '{entry}'.")
    return urls


# RPC endpoints used for contract-wallet (EIP-1271) signature checks
CHAIN_RPC_URLS = parse_chain_rpc_urls(os.getenv("CHAIN_RPC_URLS"))


def get_expected_domain() -> str:
    """Returns the host[:port] SIWE messages must be bound to."""
    if EXPECTED_DOMAIN:
        return EXPECTED_DOMAIN.strip()
    if APP_URL:
        try:
            host = domain_from_url(APP_URL)
        except ValueError as e:
            raise ConfigurationError(f"APP_URL is not a valid URL: {e}") from e
        if host:
            return host
    raise ConfigurationError("Neither EXPECTED_DOMAIN nor APP_URL/NEXTAUTH_URL/VERCEL_URL is configured.")


# Basic validation
if not JWT_SECRET_KEY:
    print("Warning: JWT_SECRET_KEY not found in .env file. Authentication will fail.")
if not (EXPECTED_DOMAIN or APP_URL):
    print("Warning: No EXPECTED_DOMAIN or APP_URL configured. SIWE sign-in will fail.")
if not CHAIN_RPC_URLS:
    print("Warning: CHAIN_RPC_URLS not set. Smart contract wallet signatures cannot be verified.")
