"""Rate limiting yapilandirmasi (slowapi)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from smartinvoice.config import settings

# Client IP bazli rate limiter.
# default_limits, main.py'deki SlowAPIASGIMiddleware ile tum endpoint'lere uygulanir;
# @limiter.limit ile isaretli endpoint'ler (AI ayristirma) kendi limitini kullanir.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
