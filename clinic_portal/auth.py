"""
Auth module: credential decoding and the resolved user session.

The portal never verifies the credential's signature. The claims are read only
to decide what to show; the clinic API re-validates the token on every call and
is the one place permissions are enforced.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from jose.utils import base64url_decode

from clinic_portal.exceptions import DecodeError

logger = logging.getLogger(__name__)

ROLE_PREFIX = "ROLE_"
DEFAULT_ROLE = "USER"


class Role(str, Enum):
    ADMIN = "ADMIN"
    MD = "MD"
    DMD = "DMD"
    NURSE = "NURSE"


CLINICAL_ROLES = frozenset({Role.MD, Role.DMD, Role.NURSE})


@dataclass(frozen=True)
class UserSession:
    """Identity decoded from the current credential."""
    username: str
    role: str                     # "ADMIN" | "MD" | "DMD" | "NURSE" | anything else

    @property
    def known_role(self) -> Optional[Role]:
        try:
            return Role(self.role)
        except ValueError:
            return None

    @property
    def is_admin(self) -> bool:
        return self.known_role is Role.ADMIN

    @property
    def has_clinical_access(self) -> bool:
        return self.known_role in CLINICAL_ROLES


def _first(claims: dict, name: str) -> Any:
    values = claims.get(name)
    if isinstance(values, list) and values:
        return values[0]
    return None


RoleExtractor = Callable[[dict], Any]

# Tried in order; the first truthy value wins.
ROLE_EXTRACTORS: tuple[RoleExtractor, ...] = (
    lambda claims: claims.get("role"),
    lambda claims: _first(claims, "roles"),
    lambda claims: _first(claims, "authorities"),
    lambda claims: claims.get("auth"),
)


def extract_role(claims: dict) -> str:
    role: Any = DEFAULT_ROLE
    for extractor in ROLE_EXTRACTORS:
        found = extractor(claims)
        if found:
            role = found
            break
    role = str(role)
    if role.startswith(ROLE_PREFIX):
        role = role[len(ROLE_PREFIX):]
    return role


def extract_username(claims: dict) -> str:
    return str(claims.get("sub") or claims.get("username") or "")


def read_claims(token: str) -> dict:
    """Decode the payload segment of a credential without checking its signature.

    Only the payload is read; the header and signature segments may be anything.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        raise DecodeError("credential must have three dot-separated segments")
    payload = token.split(".")[1]
    try:
        claims = json.loads(base64url_decode(payload.encode("ascii")))
    except ValueError as e:
        raise DecodeError(str(e) or "payload is not valid base64url JSON") from e
    if not isinstance(claims, dict):
        raise DecodeError("payload is not a JSON object")
    return claims


def decode_credential(token: str) -> UserSession:
    claims = read_claims(token)
    session = UserSession(username=extract_username(claims), role=extract_role(claims))
    logger.debug("Decoded credential for %s with role %s", session.username, session.role)
    return session
