"""
Token store: durable storage for the bearer credential.

FileTokenStore plays the part of the browser profile's local storage: a small
JSON object file in which the credential lives under a fixed key. A missing or
unusable file is never an error; callers treat an absent token as "not
authenticated".
"""

import json
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class TokenStore:
    def save(self, token: str) -> None:
        raise NotImplementedError

    def read(self) -> Optional[str]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self, token: Optional[str] = None):
        self._token = token

    def save(self, token: str) -> None:
        self._token = token

    def read(self) -> Optional[str]:
        return self._token

    def clear(self) -> None:
        self._token = None


class FileTokenStore(TokenStore):
    def __init__(self, path: str, key: str = "authToken"):
        self.path = path
        self.key = key

    def _load(self) -> Optional[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Profile storage at %s is unavailable: %s", self.path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Profile storage at %s is not a JSON object", self.path)
            return None
        return data

    def _dump(self, data: dict) -> None:
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning("Could not write profile storage at %s: %s", self.path, e)

    def save(self, token: str) -> None:
        data = self._load()
        if data is None:
            data = {}
        data[self.key] = token
        self._dump(data)

    def read(self) -> Optional[str]:
        data = self._load()
        if not data:
            return None
        token = data.get(self.key)
        return token if isinstance(token, str) else None

    def clear(self) -> None:
        data = self._load()
        if not data or self.key not in data:
            return
        del data[self.key]
        self._dump(data)
