"""
API Security Utilities
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from netsec_scanner.core.config import ScannerSettings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Depends(api_key_header)):
    """
    Checks the X-API-Key header against the API_KEY setting.
    Authentication is disabled when API_KEY is not configured.
    """
    expected = ScannerSettings.from_env().api_key
    if not expected:
        logger.warning("API_KEY is not set. API authentication is disabled.")
        return True

    if api_key and api_key == expected:
        return True

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing API Key",
    )
