"""Content catalog lookups.

The catalog is owned by the content service; this service only reads course
shapes from it. ``HttpContentCatalog`` is used in deployments,
``InMemoryContentCatalog`` for local runs and tests.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import httpx
import structlog
from aiocache import Cache
from pydantic import ValidationError

from training_service.catalog.shape import CourseShape, build_course_shape
from training_service.core.config import settings
from training_service.core.exceptions import CatalogUnavailable, UnknownCourse
from training_service.schemas.catalog import CoursePayload

logger = structlog.get_logger()


class ContentCatalog(ABC):
    """Read-only source of course shapes."""

    @abstractmethod
    async def get_course_shape(self, course_id: str) -> CourseShape:
        """Return the current shape of a course or raise ``UnknownCourse``."""


class HttpContentCatalog(ContentCatalog):
    """Catalog backed by the content service REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        cache: Optional[Cache] = None,
        ttl: int = 300,
        default_pass_threshold: Optional[int] = None,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.ttl = ttl
        self.default_pass_threshold = (
            settings.DEFAULT_PASS_THRESHOLD if default_pass_threshold is None else default_pass_threshold
        )

    async def get_course_shape(self, course_id: str) -> CourseShape:
        cache_key = f"course_shape:{course_id}"
        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return build_course_shape(CoursePayload.model_validate(cached), self.default_pass_threshold)

        payload = await self._fetch_payload(course_id)
        try:
            course = CoursePayload.model_validate(payload)
        except ValidationError as e:
            logger.error("Invalid course shape from content service", course_id=course_id, error=str(e))
            raise CatalogUnavailable(f"Content service returned an invalid shape for {course_id}")

        # Only documents that validated are cached
        if self.cache is not None:
            await self.cache.set(cache_key, payload, ttl=self.ttl)
        return build_course_shape(course, self.default_pass_threshold)

    async def _fetch_payload(self, course_id: str) -> Any:
        url = f"{self.base_url}/api/courses/{course_id}/shape"
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.error("Content service request failed", course_id=course_id, error=str(e))
            raise CatalogUnavailable("Content service is unavailable")

        if response.status_code == 404:
            raise UnknownCourse(f"Course {course_id} not found", course_id=course_id)
        if response.status_code >= 400:
            logger.error(
                "Content service error",
                course_id=course_id,
                status_code=response.status_code
            )
            raise CatalogUnavailable("Content service is unavailable")

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Content service returned a non-JSON body", course_id=course_id, error=str(e))
            raise CatalogUnavailable("Content service returned an unreadable response")

        # Some deployments wrap documents as {"success": ..., "data": {...}}
        if isinstance(payload, dict) and "data" in payload and isinstance(payload["data"], dict):
            payload = payload["data"]
        return payload


class InMemoryContentCatalog(ContentCatalog):
    """Catalog holding prebuilt shapes."""

    def __init__(self, shapes: Iterable[CourseShape] = ()):
        self._shapes: Dict[str, CourseShape] = {shape.course_id: shape for shape in shapes}

    @classmethod
    def from_payloads(
        cls,
        payloads: Iterable[Dict[str, Any]],
        default_pass_threshold: Optional[int] = None,
    ) -> "InMemoryContentCatalog":
        if default_pass_threshold is None:
            default_pass_threshold = settings.DEFAULT_PASS_THRESHOLD
        return cls(
            build_course_shape(CoursePayload.model_validate(payload), default_pass_threshold)
            for payload in payloads
        )

    @classmethod
    def from_file(cls, path: str) -> "InMemoryContentCatalog":
        """Load a JSON file holding a list of course shape documents."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("courses", [data])
        catalog = cls.from_payloads(data)
        logger.info("Loaded catalog fixture", path=path, courses=len(catalog._shapes))
        return catalog

    @classmethod
    def from_settings(cls) -> "InMemoryContentCatalog":
        if settings.CATALOG_FIXTURE_PATH:
            return cls.from_file(settings.CATALOG_FIXTURE_PATH)
        return cls()

    def add(self, shape: CourseShape):
        """Register or replace a course version."""
        self._shapes[shape.course_id] = shape

    async def get_course_shape(self, course_id: str) -> CourseShape:
        try:
            return self._shapes[course_id]
        except KeyError:
            raise UnknownCourse(f"Course {course_id} not found", course_id=course_id)
