import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIASGIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from smartinvoice.config import settings
from smartinvoice.logging_config import setup_logging
from smartinvoice.rate_limit import limiter
from smartinvoice.routers import ai_api, invoices_api

# Loglama sistemini baslat (uygulama ayaga kalkmadan once)
setup_logging()

logger = logging.getLogger(__name__)

# FastAPI uygulamasini olustur
app = FastAPI(
    title=settings.APP_NAME,
    description="AI destekli basit fatura olusturma servisi",
    version="0.1.0",
)

logger.info("%s uygulamasi baslatiliyor...", settings.APP_NAME)

# slowapi'yi FastAPI state'e bagla
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# CORS Ayarlari
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://localhost:5173"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


# ---------------------------------------------------------------------------
# Guvenlik Header'lari Middleware
# ---------------------------------------------------------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Her yanita guvenlik header'lari ekler."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# Genel rate limit (RATE_LIMIT_DEFAULT); AI endpoint'i kendi limitini kullanir
app.add_middleware(SlowAPIASGIMiddleware)


# ---------------------------------------------------------------------------
# Hata Handler'lari
# ---------------------------------------------------------------------------
@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Bu servisin kendi rate limit'i asildiginda (AI gateway'inkinden farkli)."""
    logger.warning("Rate limit asildi: %s %s", request.method, request.url)
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please wait a moment and try again.",
            "category": "rate_limited",
            "retry_after": exc.detail,
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Yakalanmamis hatalar uygulamayi dusurmez, 500 olarak doner."""
    logger.error("Yakalanmamis hata: %s %s", request.method, request.url, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Something went wrong. Please try again."},
    )


# API Router'lari
app.include_router(invoices_api.router, prefix="/api/v1/invoices", tags=["Faturalar API"])
app.include_router(ai_api.router, prefix="/api/v1/ai", tags=["AI Asistan"])


@app.get("/")
def root():
    return {"app": settings.APP_NAME, "status": "ok"}
