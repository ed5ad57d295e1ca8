from typing import Any, Optional

from fastapi import Depends, Request, UploadFile
from pydantic import BaseModel
from starlette.datastructures import UploadFile as StarletteUploadFile

from clinic_portal.auth import UserSession
from clinic_portal.exceptions import AccessDenied, Unauthenticated
from clinic_portal.guard import Action, Decision, Resource, evaluate
from clinic_portal.portal import Portal
from clinic_portal.services.query_cache import QueryResult
from clinic_portal.services.resources import FileUpload


def get_portal(request: Request) -> Portal:
    return request.app.state.portal


def get_session(portal: Portal = Depends(get_portal)) -> UserSession:
    """Any signed-in user; anonymous visitors are sent to the entry page."""
    return portal.session.ensure_authenticated()


def gate(resource: Resource, action: Action = Action.VIEW):
    """Dependency that admits the request only when the guard permits it."""
    def dependency(portal: Portal = Depends(get_portal)) -> UserSession:
        decision = evaluate(portal.session, resource, action)
        if decision is Decision.PERMITTED:
            return portal.session.session
        if decision is Decision.DENIED:
            raise AccessDenied(resource.value, action.value, portal.session.session.role)
        raise Unauthenticated("Not signed in")
    return dependency


def to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, mode="json")
    if isinstance(data, list):
        return [to_jsonable(item) for item in data]
    return data


def render(result: QueryResult) -> dict:
    """A query triple as a surface: loading, failed to load, empty or ready.

    A read refused for want of a credential is not shown inline; it sends the
    visitor back to the entry page like any other gated surface.
    """
    if isinstance(result.error, Unauthenticated):
        raise Unauthenticated(result.error.reason)
    return {
        "status": result.status,
        "data": to_jsonable(result.data),
        "error": str(result.error) if result.error is not None else None,
    }


def user_payload(session: Optional[UserSession]) -> Optional[dict]:
    if session is None:
        return None
    return {"username": session.username, "role": session.role}


async def to_file_upload(upload: UploadFile) -> FileUpload:
    content = await upload.read()
    return FileUpload(
        filename=upload.filename or "upload",
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )


async def read_multipart(request: Request) -> tuple[dict[str, str], dict[str, FileUpload]]:
    """Split a submitted form into plain fields and file attachments."""
    form = await request.form()
    fields: dict[str, str] = {}
    files: dict[str, FileUpload] = {}
    for name, value in form.multi_items():
        if isinstance(value, StarletteUploadFile):
            if value.filename:
                files[name] = await to_file_upload(value)
        else:
            fields[name] = value
    return fields, files
