"""Rate limiting shared by the API routers."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from tasknest.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)


def default_rate_limit() -> str:
    """Get the default rate limit from settings."""
    return get_settings().rate_limit_default


def bulk_rate_limit() -> str:
    """Get the bulk operation rate limit from settings."""
    return get_settings().rate_limit_bulk
