import logging

from fastapi import Depends, HTTPException
from fastapi.security.api_key import APIKeyHeader

from bookshelf import config

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=True)


def verify_api_key(api_key: str = Depends(api_key_header)):
    if api_key != config.API_KEY:
        logger.warning("Rejected request with an invalid API key")
        raise HTTPException(status_code=401, detail="Invalid API Key")
    return True
