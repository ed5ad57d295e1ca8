import json as jsonlib

import httpx
import pytest
from jose import jwt

from clinic_portal.config import Settings
from clinic_portal.portal import Portal
from clinic_portal.services.token_store import MemoryTokenStore

API = "http://clinic.test"


def make_token(claims: dict) -> str:
    return jwt.encode(claims, "not-checked-by-the-portal", algorithm="HS256")


class FakeBackend:
    """Canned clinic API. Every request that reaches it is recorded."""

    def __init__(self):
        self.routes = {}
        self.calls: list[httpx.Request] = []

    def add(self, method, path, status=200, json=None, text=None, content=None, headers=None):
        self.routes[(method, path)] = dict(status=status, json=json, text=text, content=content, headers=headers)

    def add_handler(self, method, path, handler):
        self.routes[(method, path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")
        if callable(route):
            return route(request)
        headers = dict(route["headers"] or {})
        if route["json"] is not None:
            headers.setdefault("content-type", "application/json")
            return httpx.Response(route["status"], content=jsonlib.dumps(route["json"]).encode(), headers=headers)
        if route["content"] is not None:
            return httpx.Response(route["status"], content=route["content"], headers=headers)
        headers.setdefault("content-type", "text/plain")
        return httpx.Response(route["status"], text=route["text"] or "", headers=headers)

    def calls_to(self, method, path) -> list[httpx.Request]:
        return [c for c in self.calls if c.method == method and c.url.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_base_url=API,
        token_store_path=str(tmp_path / "profile" / "storage.json"),
        downloads_dir=str(tmp_path / "downloads"),
    )


@pytest.fixture
def nurse_token():
    return make_token({"sub": "nurse.joy", "role": "ROLE_NURSE"})


@pytest.fixture
def md_token():
    return make_token({"sub": "dr.house", "authorities": ["ROLE_MD"]})


@pytest.fixture
def dmd_token():
    return make_token({"sub": "dr.molar", "roles": ["DMD"]})


@pytest.fixture
def admin_token():
    return make_token({"username": "root", "role": "ADMIN"})


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def make_portal(settings, backend, store):
    def build(token=None):
        if token is not None:
            store.save(token)
        portal = Portal(settings, token_store=store, transport=backend.transport)
        portal.start()
        return portal
    return build
