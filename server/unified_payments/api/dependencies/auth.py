from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from unified_payments.api.dependencies.gateways import get_app_settings
from unified_payments.core.config import Settings
from unified_payments.core.logging import get_logger

logger = get_logger(__name__)


def extract_api_key(x_api_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
    api_key = x_api_key or authorization
    if api_key and api_key.lower().startswith("bearer "):
        api_key = api_key[len("bearer "):].strip()
    return api_key or None


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """
    Require an API key in ``x-api-key`` or ``Authorization``.

    Any non-empty key is accepted outside production. In production the
    key must be one of the configured ``api_keys``.
    """
    api_key = extract_api_key(x_api_key, authorization)
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is required",
        )

    if settings.is_production and api_key not in settings.api_keys:
        logger.warning("auth.invalid_api_key", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    request.state.api_key = api_key
    return api_key
