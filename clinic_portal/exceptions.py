from typing import Optional


class PortalError(Exception):
    """Base class for every error raised by the portal core."""


class Unauthenticated(PortalError):
    def __init__(self, reason: str = "No authentication token found"):
        self.reason = reason
        super().__init__(reason)


class DecodeError(PortalError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to decode token: {reason}")


class HttpError(PortalError):
    def __init__(self, status_code: int, body: str = "", action: Optional[str] = None):
        self.status_code = status_code
        self.body = body or ""
        self.action = action
        prefix = f"{action} failed" if action else "Request failed"
        message = f"{prefix} with status {status_code}"
        if self.body:
            message = f"{message}: {self.body}"
        super().__init__(message)


class InvalidCredentials(HttpError):
    def __init__(self, status_code: int, body: str = ""):
        super().__init__(status_code, body, action="Login")
        self.args = ("Invalid credentials",)


class ValidationError(PortalError):
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


class AccessDenied(PortalError):
    def __init__(self, resource: str, action: str, role: Optional[str] = None):
        self.resource = resource
        self.action = action
        self.role = role
        super().__init__(f"Role {role or 'anonymous'} may not {action} {resource}")


class UnreadableResponse(HttpError):
    """A response declared JSON but its body does not parse."""

    def __init__(self, status_code: int, body: str = "", action: Optional[str] = None):
        super().__init__(status_code, body, action=action)
        prefix = f"{action} returned" if action else "Response was"
        self.args = (f"{prefix} malformed JSON (status {status_code}): {self.body}",)
