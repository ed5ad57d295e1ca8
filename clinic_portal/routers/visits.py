import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from clinic_portal import guard
from clinic_portal.auth import UserSession
from clinic_portal.deps import gate, get_portal, read_multipart, render, to_file_upload, to_jsonable
from clinic_portal.exceptions import AccessDenied
from clinic_portal.guard import Action, Resource
from clinic_portal.portal import Portal
from clinic_portal.schemas.visit import VISIT_FORMS, VisitType
from clinic_portal.services.audit import VISIT_AUDIT_ENTITIES
from clinic_portal.services.list_filters import ALL, VISITS_PER_PAGE, filter_visits, paginate
from clinic_portal.services.visits import EXPORT_FILENAME

router = APIRouter()


async def _submitted_form(request: Request, visit_type: VisitType):
    fields, images = await read_multipart(request)
    return VISIT_FORMS[visit_type].model_validate(fields), images


@router.get("")
async def list_visits(
    visit_filter: str = Query(ALL, alias="filter"),
    page: int = 1,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.VISITS)),
):
    result = await portal.visits.visits()
    surface = render(result)
    if result.data is not None:
        paged = paginate(filter_visits(result.data, visit_filter), page, VISITS_PER_PAGE)
        surface["data"] = to_jsonable(paged.items)
        surface["page"] = paged.page
        surface["totalPages"] = paged.total_pages
        surface["totalItems"] = paged.total_items
    return surface


@router.get("/{visit_id}")
async def get_visit(
    visit_id: int,
    type_param: Optional[str] = Query(None, alias="type"),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.VISITS)),
):
    visit_type = VisitType.parse(type_param)
    visit, audit = await asyncio.gather(
        portal.visits.visit(visit_type, visit_id),
        portal.audit.audit_logs(VISIT_AUDIT_ENTITIES[visit_type], visit_id),
    )
    can_modify = guard.can_modify_visit(session, visit_type)
    return {
        "visit": render(visit),
        "auditTrail": render(audit),
        "visitType": visit_type.value,
        "canEditDelete": can_modify,
        "permissionMessage": None if can_modify else guard.permission_message(visit_type),
    }


@router.post("/medical", status_code=201)
async def create_medical_visit(
    request: Request,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.VISITS)),
):
    # The intake surface admits nurses; see guard.MEDICAL_VISIT_INTAKE_ROLES.
    if not guard.can_record_medical_visit_at_intake(portal.session.session):
        raise AccessDenied(Resource.MEDICAL_VISIT.value, Action.CREATE.value, session.role)
    form, images = await _submitted_form(request, VisitType.MEDICAL)
    created = await portal.visits.create_visit(VisitType.MEDICAL, form, images)
    return {"created": created}


@router.post("/dental", status_code=201)
async def create_dental_visit(
    request: Request,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.DENTAL_VISIT, Action.CREATE)),
):
    guard.require(portal.session.session, Resource.DENTAL_VISIT, Action.CREATE)
    form, images = await _submitted_form(request, VisitType.DENTAL)
    created = await portal.visits.create_visit(VisitType.DENTAL, form, images)
    return {"created": created}


@router.put("/{visit_id}")
async def update_visit(
    visit_id: int,
    request: Request,
    type_param: Optional[str] = Query(None, alias="type"),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.VISITS)),
):
    visit_type = VisitType.parse(type_param)
    if not guard.can_open_visit_editor(session):
        raise AccessDenied(guard.VISIT_RESOURCES[visit_type].value, Action.EDIT.value, session.role)
    guard.require(portal.session.session, guard.VISIT_RESOURCES[visit_type], Action.EDIT)
    form, images = await _submitted_form(request, visit_type)
    updated = await portal.visits.update_visit(visit_type, visit_id, form, images)
    return {"updated": updated}


@router.delete("/{visit_id}")
async def delete_visit(
    visit_id: int,
    type_param: Optional[str] = Query(None, alias="type"),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.VISITS)),
):
    visit_type = VisitType.parse(type_param)
    guard.require(portal.session.session, guard.VISIT_RESOURCES[visit_type], Action.DELETE)
    await portal.visits.delete_visit(visit_type, visit_id)
    return {"deleted": True, "visit_id": visit_id, "visitType": visit_type.value}


@router.post("/import")
async def import_visits(
    file: UploadFile = File(...),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.VISITS, Action.IMPORT)),
):
    guard.require(portal.session.session, Resource.VISITS, Action.IMPORT)
    await portal.visits.import_visits(await to_file_upload(file))
    return {"message": "Visits imported successfully!"}


@router.post("/export")
async def export_visits(
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.VISITS, Action.EXPORT)),
):
    guard.require(portal.session.session, Resource.VISITS, Action.EXPORT)
    await portal.visits.export_visits()
    return {"saved": EXPORT_FILENAME}
