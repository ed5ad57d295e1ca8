import logging
import re

from clinic_portal.config import Settings
from clinic_portal.exceptions import InvalidCredentials, ValidationError
from clinic_portal.services.http_client import AuthenticatedClient

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 100
_TAG_CHARS = re.compile(r"[<>]")


def sanitize_input(value: str) -> str:
    return _TAG_CHARS.sub("", (value or "").strip())[:MAX_INPUT_LENGTH]


def validate_login(username: str, password: str) -> None:
    if not username or not password:
        raise ValidationError("username", "Please enter both username and password")
    if len(username) < 3:
        raise ValidationError("username", "Username must be at least 3 characters")
    if len(password) < 6:
        raise ValidationError("password", "Password must be at least 6 characters")


class AuthService:
    """Exchanges username and password for a credential. The only anonymous call."""

    def __init__(self, client: AuthenticatedClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def login(self, username: str, password: str) -> str:
        validate_login(username, password)
        response = await self.client.anonymous_request(
            "POST",
            f"{self.settings.api_root}/api/auth/login",
            json={"username": sanitize_input(username), "password": sanitize_input(password)},
        )
        if response.status_code != 200:
            logger.info("Login rejected for %s with status %s", username, response.status_code)
            raise InvalidCredentials(response.status_code, response.text)
        return response.text.strip()
