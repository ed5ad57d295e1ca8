"""
Plumbing shared by the resource services: URL building, response reading,
query registration and the mutate-then-invalidate sequence.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import aiofiles
import httpx

from clinic_portal.config import Settings
from clinic_portal.exceptions import HttpError, UnreadableResponse
from clinic_portal.services.http_client import AuthenticatedClient
from clinic_portal.services.invalidation import Mutation, QueryFamily, families_for
from clinic_portal.services.query_cache import Listener, QueryCache, QueryKey, QueryResult, Subscription

logger = logging.getLogger(__name__)


@dataclass
class FileUpload:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def as_part(self) -> tuple[str, bytes, str]:
        return (self.filename, self.content, self.content_type)


def _is_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return "application/json" in content_type or content_type.endswith("+json")


def read_response(response: httpx.Response, action: Optional[str] = None) -> Any:
    """Interpret a raw response: raise on failure, JSON when declared, else text.

    An empty successful body is a void result and comes back as None.
    """
    if not response.is_success:
        raise HttpError(response.status_code, response.text, action=action)
    if not response.content:
        return None
    if _is_json(response):
        try:
            return response.json()
        except ValueError as e:
            logger.warning("Malformed JSON in a %s response: %s", response.status_code, e)
            raise UnreadableResponse(response.status_code, response.text, action=action) from e
    return response.text


class ResourceService:
    """Base for one resource family's queries and mutations."""

    def __init__(self, client: AuthenticatedClient, cache: QueryCache, settings: Settings):
        self.client = client
        self.cache = cache
        self.settings = settings

    def url(self, path: str) -> str:
        return f"{self.settings.api_root}{path}"

    def key(self, family: QueryFamily, path: str) -> QueryKey:
        return QueryKey(family, self.url(path))

    def fetcher(self, key: QueryKey, parse: Optional[Callable[[Any], Any]] = None,
                params: Optional[dict] = None) -> Callable[[], Awaitable[Any]]:
        async def fetch() -> Any:
            response = await self.client.request("GET", key.url, params=params)
            data = read_response(response, action="Fetch data")
            return parse(data) if parse is not None and data is not None else data
        return fetch

    async def _query(self, key: QueryKey, parse: Optional[Callable[[Any], Any]] = None) -> QueryResult:
        return await self.cache.query(key, self.fetcher(key, parse))

    def _subscribe(self, key: QueryKey, refresh_interval: Optional[float],
                   listener: Optional[Listener], parse: Optional[Callable[[Any], Any]] = None) -> Subscription:
        return self.cache.subscribe(key, self.fetcher(key, parse), refresh_interval, listener)

    async def _get(self, path: str, action: str, params: Optional[dict] = None) -> Any:
        response = await self.client.request("GET", self.url(path), params=params)
        return read_response(response, action=action)

    async def _mutate(self, mutation: Mutation, method: str, path: str, action: str, **kwargs: Any) -> Any:
        response = await self.client.request(method, self.url(path), **kwargs)
        result = read_response(response, action=action)
        await self.cache.invalidate(families_for(mutation))
        logger.info("%s succeeded (%s %s)", mutation.value, method, path)
        return result

    async def _import(self, mutation: Mutation, path: str, upload: FileUpload, action: str) -> Any:
        return await self._mutate(mutation, "POST", path, action, files={"file": upload.as_part()})

    async def _export(self, path: str, filename: str, action: str) -> str:
        """Download a binary export and save it under the fixed filename."""
        response = await self.client.request("GET", self.url(path))
        if not response.is_success:
            raise HttpError(response.status_code, response.text, action=action)
        os.makedirs(self.settings.downloads_dir, exist_ok=True)
        target = os.path.join(self.settings.downloads_dir, filename)
        async with aiofiles.open(target, "wb") as f:
            await f.write(response.content)
        logger.info("Saved export to %s (%d bytes)", target, len(response.content))
        return target
