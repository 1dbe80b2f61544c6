"""Shared dependencies for Training Progress Service."""

from typing import Optional
import httpx
from aiocache import Cache
import structlog
from jose import jwt, JWTError
from datetime import datetime, timedelta
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from training_service.core.config import settings
from training_service.core.database import get_db
from training_service.catalog.catalog_client import ContentCatalog, HttpContentCatalog, InMemoryContentCatalog
from training_service.progress.ledger import SqlProgressLedger
from training_service.progress.progress_service import TrainingProgressService

logger = structlog.get_logger()

# Global instances
_cache: Optional[Cache] = None
_http_client: Optional[httpx.AsyncClient] = None
_catalog: Optional[ContentCatalog] = None

# Security
security = HTTPBearer()


async def get_cache():
    """Get Redis cache instance, falling back to memory."""
    global _cache

    if _cache is None:
        try:
            _cache = Cache.from_url(settings.REDIS_URL)
            await _cache.exists("test")  # Test connection
            logger.info("Redis cache connection established")
        except Exception as e:
            logger.warning("Redis cache not available, using memory cache", error=str(e))
            _cache = Cache(Cache.MEMORY)

    return _cache


async def get_http_client() -> httpx.AsyncClient:
    """Get HTTP client for service communication."""
    global _http_client

    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.HTTP_TIMEOUT),
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"{settings.SERVICE_NAME}/{settings.APP_VERSION}"
            }
        )

    return _http_client


async def close_http_client():
    """Close the shared HTTP client on shutdown."""
    global _http_client

    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


async def get_content_catalog() -> ContentCatalog:
    """Get the configured content catalog."""
    global _catalog

    if _catalog is None:
        if settings.CATALOG_BACKEND == "memory":
            _catalog = InMemoryContentCatalog.from_settings()
        else:
            _catalog = HttpContentCatalog(
                client=await get_http_client(),
                base_url=settings.CONTENT_SERVICE_URL,
                cache=await get_cache(),
                ttl=settings.CATALOG_CACHE_TTL,
            )
        logger.info("Content catalog configured", backend=settings.CATALOG_BACKEND)

    return _catalog


async def get_progress_service(
    db: AsyncSession = Depends(get_db),
    catalog: ContentCatalog = Depends(get_content_catalog),
) -> TrainingProgressService:
    """Build a request-scoped progress service."""
    return TrainingProgressService(db, catalog, SqlProgressLedger(db))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Create JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Get current user from JWT token."""
    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM]
        )
        user_id: str = payload.get("sub")
        if user_id is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return {"user_id": user_id, "role": payload.get("role", "student")}
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
