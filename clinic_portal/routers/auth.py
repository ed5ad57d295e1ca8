from fastapi import APIRouter, Depends, Form
from fastapi.responses import RedirectResponse

from clinic_portal.auth import UserSession
from clinic_portal.deps import gate, get_portal, get_session, user_payload
from clinic_portal.guard import Resource
from clinic_portal.portal import Portal

router = APIRouter()


@router.get("/")
async def entry(portal: Portal = Depends(get_portal)):
    """Entry surface: the login form, or a pointer to the dashboard."""
    session = portal.session.session
    return {
        "surface": "dashboard" if session else "login",
        "user": user_payload(session),
    }


@router.post("/login")
async def login(
    username: str = Form(""),
    password: str = Form(""),
    portal: Portal = Depends(get_portal),
):
    await portal.login(username, password)
    return RedirectResponse("/dashboard", status_code=303)


@router.post("/logout")
async def logout(portal: Portal = Depends(get_portal)):
    portal.logout()
    return RedirectResponse("/", status_code=303)


@router.get("/me")
async def me(session: UserSession = Depends(get_session)):
    return user_payload(session)


HELP_TOPICS = (
    {"topic": "Patients", "text": "Search, add, import or export patient records."},
    {"topic": "Visits", "text": "Record medical and dental visits; only MDs edit medical visits and only DMDs edit dental visits."},
    {"topic": "Dental chart", "text": "Click a tooth to mark caries (C), extraction (X) or no caries (V); click again to clear."},
)


@router.get("/help")
async def help_page(session: UserSession = Depends(gate(Resource.HELP))):
    return {"user": user_payload(session), "topics": list(HELP_TOPICS)}
