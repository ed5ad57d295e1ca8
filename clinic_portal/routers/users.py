from fastapi import APIRouter, Body, Depends

from clinic_portal import guard
from clinic_portal.auth import UserSession
from clinic_portal.deps import gate, get_portal, render, to_jsonable
from clinic_portal.guard import Action, Resource
from clinic_portal.portal import Portal
from clinic_portal.schemas.user import ACCOUNT_ROLES, UserCreate, UserUpdate
from clinic_portal.services.list_filters import ALL, filter_users

router = APIRouter()


@router.get("")
async def list_users(
    search: str = "",
    role: str = ALL,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.USERS)),
):
    result = await portal.users.users_list()
    surface = render(result)
    if result.data is not None:
        surface["data"] = to_jsonable(filter_users(result.data, search, role))
    surface["roles"] = list(ACCOUNT_ROLES)
    return surface


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.USERS)),
):
    return to_jsonable(await portal.users.get_user(user_id))


@router.post("", status_code=201)
async def create_user(
    body: dict = Body(...),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.USERS, Action.CREATE)),
):
    guard.require(portal.session.session, Resource.USERS, Action.CREATE)
    created = await portal.users.create_user(UserCreate.model_validate(body))
    return {"created": created}


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: dict = Body(...),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.USERS, Action.EDIT)),
):
    guard.require(portal.session.session, Resource.USERS, Action.EDIT)
    updated = await portal.users.update_user(user_id, UserUpdate.model_validate(body))
    return {"updated": updated}


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.USERS, Action.DELETE)),
):
    guard.require(portal.session.session, Resource.USERS, Action.DELETE)
    await portal.users.delete_user(user_id)
    return {"deleted": True, "user_id": user_id}
