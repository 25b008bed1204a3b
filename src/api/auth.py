"""Bearer API key checks

Two key sets are read from the environment on every request:
- API_KEYS: callers acting on behalf of a user (reading app backend)
- ADMIN_API_KEYS: operators and schedulers (queue draining, catalog seeding)
Admin keys are accepted wherever a regular key is.
"""
import os
import logging
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _keys_from_env(variable: str) -> set[str]:
    return {key.strip() for key in os.getenv(variable, "").split(",") if key.strip()}


def _check(api_key: str, accepted: set[str], scope: str) -> str:
    if not accepted:
        logger.error(f"No {scope} API keys configured - rejecting request")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    if api_key not in accepted:
        logger.warning(f"Rejected {scope} API key: {api_key[:6]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    return api_key


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Accept any configured user or admin key"""
    accepted = _keys_from_env("API_KEYS") | _keys_from_env("ADMIN_API_KEYS")
    return _check(credentials.credentials, accepted, "user")


async def verify_admin_key(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Accept only admin keys"""
    return _check(credentials.credentials, _keys_from_env("ADMIN_API_KEYS"), "admin")
