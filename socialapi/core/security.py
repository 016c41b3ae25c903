import logging
import secrets
from typing import Optional

from fastapi import Header, Request

from socialapi.core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


def require_admin_key(
    request: Request,
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> None:
    """관리자 엔드포인트 보호 - X-Admin-Key 헤더를 ADMIN_API_KEY 와 비교"""
    expected = request.app.container.config().ADMIN_API_KEY
    if not expected:
        logger.warning("Admin endpoint called but ADMIN_API_KEY is not configured")
        raise AuthorizationError("Admin API is disabled")
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        raise AuthorizationError("Invalid admin key")
