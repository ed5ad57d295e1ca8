from typing import ClassVar, Optional

from clinic_portal.schemas.base import CamelModel, FormModel

ACCOUNT_ROLES = ("MD", "DMD", "NURSE", "ADMIN")


class UserAccount(CamelModel):
    id: int
    username: str
    role: str


class UserCreate(FormModel):
    REQUIRED: ClassVar[tuple] = (
        ("username", "Please enter a username"),
        ("role", "Please select a role"),
        ("password", "Please enter a password"),
    )

    username: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None


class UserUpdate(FormModel):
    REQUIRED: ClassVar[tuple] = (
        ("username", "Please enter a username"),
        ("role", "Please select a role"),
    )

    username: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None

    def to_wire(self) -> dict:
        # No password means "leave it unchanged".
        payload = {"username": self.username, "role": self.role}
        if self.password:
            payload["password"] = self.password
        return payload
