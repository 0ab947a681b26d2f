"""API authentication using API keys"""
import logging
from fastapi import Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from src import config
from src.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_api_keys() -> list[str]:
    """API keys from configuration (API_KEYS, comma-separated)"""
    if not config.API_KEYS:
        logger.warning("No API_KEYS configured in environment")
    return list(config.API_KEYS)


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """
    Verify API key from Authorization header

    Args:
        credentials: HTTP authorization credentials

    Returns:
        The verified API key

    Raises:
        ConfigurationError: No API keys are configured (503)
        AuthenticationError: API key is not one of the configured keys (401)
    """
    api_key = credentials.credentials
    valid_keys = get_api_keys()

    if not valid_keys:
        raise ConfigurationError("API authentication not configured", config_key="API_KEYS")

    if api_key not in valid_keys:
        raise AuthenticationError(f"Invalid API key: {api_key[:10]}...")

    logger.debug(f"API key validated: {api_key[:10]}...")
    return api_key
