import os
import logging
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from verifiedid.config import Settings, load_settings
from verifiedid.lib.cache import CacheService
from verifiedid.lib.msal_auth import AccessTokenProvider, select_strategy
from verifiedid.lib.verifiedid_api import VerifiedIdApiClient

# .env first, then environment-specific overrides (.env.production, ...)
_root = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_root / ".env")
load_dotenv(
    dotenv_path=_root / f".env.{os.getenv('ENVIRONMENT', 'development')}",
    override=True,
)

log_level = os.getenv("APP_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("verifiedid")

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


def configure_services(app: FastAPI, settings: Settings) -> None:
    """Build the shared cache, token provider and API client for app."""
    cache = CacheService(
        maximum_size=settings.cache_max_size,
        expire_after_write=settings.cache_ttl_seconds,
    )
    token_provider = AccessTokenProvider(select_strategy(settings), cache)
    app.state.settings = settings
    app.state.cache = cache
    app.state.token_provider = token_provider
    app.state.verifiedid_api = VerifiedIdApiClient(settings, token_provider)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("=== Application Starting ===")
    settings: Settings = app.state.settings
    logger.info(f"Verified ID API endpoint: {settings.api_endpoint}")
    logger.info(f"Access token strategy: {app.state.token_provider.strategy.name}")
    if settings.mock_api_enabled:
        logger.warning("Mock Verified ID API is enabled")
    if settings.cache_debug_enabled:
        logger.warning("Cache debug endpoint /api/cache is enabled")
    yield
    # Shutdown
    logger.info("=== Application Shutdown ===")


app = FastAPI(lifespan=lifespan)
configure_services(app, load_settings())

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configure allowed origins: local dev front-end; allow override via APP_ALLOW_ORIGINS env (comma-separated)
allowed = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
extra = os.getenv("APP_ALLOW_ORIGINS")
if extra:
    allowed.extend([o.strip() for o in extra.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_http_request(request: Request, call_next):
    logger.info(f"{request.method} - {request.url}")
    return await call_next(request)


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_verifiedid_api(request: Request) -> VerifiedIdApiClient:
    return request.app.state.verifiedid_api


@app.get("/healthz")
async def healthz():
    return JSONResponse(status_code=200, content={"status": "ok"})
