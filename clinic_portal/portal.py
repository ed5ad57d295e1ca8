"""
Portal: everything the front-end needs, built once at start-up and passed by
reference. There are no module-level singletons; the session state, token
store and cache live here.
"""

import logging
from typing import Callable, Optional

import httpx

from clinic_portal.config import Settings
from clinic_portal.services.audit import AuditService
from clinic_portal.services.auth_service import AuthService
from clinic_portal.services.dashboard import DashboardService
from clinic_portal.services.http_client import AuthenticatedClient
from clinic_portal.services.patients import PatientService
from clinic_portal.services.query_cache import QueryCache
from clinic_portal.services.token_store import FileTokenStore, TokenStore
from clinic_portal.services.users import UserService
from clinic_portal.services.visits import VisitService
from clinic_portal.session import SessionManager

logger = logging.getLogger(__name__)


class Portal:
    def __init__(
        self,
        settings: Settings,
        token_store: Optional[TokenStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_logout: Optional[Callable[[], None]] = None,
    ):
        self.settings = settings
        self.token_store = token_store or FileTokenStore(
            settings.token_store_path, settings.token_storage_key
        )
        self.session = SessionManager(self.token_store, on_logout=on_logout)
        self.cache = QueryCache(dedupe_interval=settings.dedupe_interval_seconds)
        self.client = AuthenticatedClient(
            self.token_store, httpx.AsyncClient(transport=transport, timeout=None)
        )

        self.auth = AuthService(self.client, settings)
        self.dashboard = DashboardService(self.client, self.cache, settings)
        self.patients = PatientService(self.client, self.cache, settings)
        self.visits = VisitService(self.client, self.cache, settings)
        self.users = UserService(self.client, self.cache, settings)
        self.audit = AuditService(self.client, self.cache, settings)

    def start(self) -> None:
        self.session.initialize()
        logger.info("Portal started against %s (session: %s)", self.settings.api_root, self.session.state.value)

    async def login(self, username: str, password: str):
        """Ask the API for a credential, then hand it to the session."""
        token = await self.auth.login(username, password)
        return self.session.login(token)

    def logout(self) -> None:
        self.session.logout()

    async def aclose(self) -> None:
        await self.cache.aclose()
        await self.client.aclose()
