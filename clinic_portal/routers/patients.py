import asyncio

from fastapi import APIRouter, Body, Depends, File, UploadFile

from clinic_portal import guard
from clinic_portal.auth import UserSession
from clinic_portal.deps import gate, get_portal, render, to_file_upload, to_jsonable
from clinic_portal.guard import Action, Resource
from clinic_portal.portal import Portal
from clinic_portal.schemas.audit import AuditEntity
from clinic_portal.schemas.patient import PatientCreate, PatientUpdate
from clinic_portal.services.list_filters import ALL, filter_patients
from clinic_portal.services.patients import EXPORT_FILENAME

router = APIRouter()


@router.get("")
async def list_patients(
    search: str = "",
    status: str = ALL,
    gender: str = ALL,
    letter: str = ALL,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.PATIENTS)),
):
    result = await portal.patients.patients_list()
    surface = render(result)
    if result.data is not None:
        surface["data"] = to_jsonable(filter_patients(result.data, search, status, gender, letter))
    surface["canDelete"] = guard.is_permitted(session, Resource.PATIENTS, Action.DELETE)
    return surface


@router.get("/{patient_id}")
async def get_patient(
    patient_id: int,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.PATIENTS)),
):
    patient, visits, audit = await asyncio.gather(
        portal.patients.patient(patient_id),
        portal.visits.patient_visits(patient_id),
        portal.audit.audit_logs(AuditEntity.PATIENTS, patient_id),
    )
    return {"patient": render(patient), "visits": render(visits), "auditTrail": render(audit)}


@router.post("", status_code=201)
async def create_patient(
    body: dict = Body(...),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.PATIENTS, Action.CREATE)),
):
    guard.require(portal.session.session, Resource.PATIENTS, Action.CREATE)
    created = await portal.patients.create_patient(PatientCreate.model_validate(body))
    return {"created": created}


@router.put("/{patient_id}")
async def update_patient(
    patient_id: int,
    body: dict = Body(...),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.PATIENTS, Action.EDIT)),
):
    guard.require(portal.session.session, Resource.PATIENTS, Action.EDIT)
    updated = await portal.patients.update_patient(patient_id, PatientUpdate.model_validate(body))
    return {"updated": updated}


@router.delete("/{patient_id}")
async def delete_patient(
    patient_id: int,
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.PATIENTS, Action.DELETE)),
):
    guard.require(portal.session.session, Resource.PATIENTS, Action.DELETE)
    await portal.patients.delete_patient(patient_id)
    return {"deleted": True, "patient_id": patient_id}


@router.post("/import")
async def import_patients(
    file: UploadFile = File(...),
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.PATIENTS, Action.IMPORT)),
):
    guard.require(portal.session.session, Resource.PATIENTS, Action.IMPORT)
    await portal.patients.import_patients(await to_file_upload(file))
    return {"message": "Patients imported successfully!"}


@router.post("/export")
async def export_patients(
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.PATIENTS, Action.EXPORT)),
):
    guard.require(portal.session.session, Resource.PATIENTS, Action.EXPORT)
    await portal.patients.export_patients()
    return {"saved": EXPORT_FILENAME}
