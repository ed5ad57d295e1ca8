import logging
from typing import Any, Optional

import httpx

from clinic_portal.exceptions import Unauthenticated
from clinic_portal.services.token_store import TokenStore

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def _has_content_type(headers: dict) -> bool:
    return any(name.lower() == "content-type" for name in headers)


def _is_binary_body(kwargs: dict) -> bool:
    if kwargs.get("files"):
        return True
    return isinstance(kwargs.get("content"), (bytes, bytearray))


class AuthenticatedClient:
    """Issues requests against the clinic API carrying the stored bearer token.

    The raw httpx response is returned untouched: status interpretation is the
    caller's job, nothing is retried, and a 401 does not log anybody out.
    """

    def __init__(self, token_store: TokenStore, http: Optional[httpx.AsyncClient] = None):
        self.token_store = token_store
        self._http = http or httpx.AsyncClient(timeout=None)

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        token = self.token_store.read()
        if not token:
            raise Unauthenticated()

        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        if not _is_binary_body(kwargs) and not _has_content_type(headers):
            headers["Content-Type"] = JSON_CONTENT_TYPE

        logger.debug("%s %s (token present)", method, url)
        return await self._http.request(method, url, headers=headers, **kwargs)

    async def anonymous_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s (anonymous)", method, url)
        return await self._http.request(method, url, **kwargs)

    async def aclose(self) -> None:
        await self._http.aclose()
