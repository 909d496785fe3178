"""Request rate limiting shared by the application and its routers."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from tailorshop.core.config import get_settings

settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)

STAFF_ACTION_LIMIT = settings.rate_limit_staff_actions
