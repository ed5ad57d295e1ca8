import asyncio

from fastapi import APIRouter, Depends

from clinic_portal.auth import UserSession
from clinic_portal.deps import gate, get_portal, render, user_payload
from clinic_portal.guard import Action, Resource, can_record_medical_visit_at_intake, is_permitted
from clinic_portal.portal import Portal

router = APIRouter()


@router.get("")
async def dashboard(
    portal: Portal = Depends(get_portal),
    session: UserSession = Depends(gate(Resource.DASHBOARD)),
):
    kpis, diagnoses, trend = await asyncio.gather(
        portal.dashboard.kpis(),
        portal.dashboard.top_diagnoses(),
        portal.dashboard.visits_trend(),
    )
    return {
        "user": user_payload(session),
        "kpis": render(kpis),
        "topDiagnoses": render(diagnoses),
        "visitsTrend": render(trend),
        "quickActions": {
            "addPatient": is_permitted(session, Resource.PATIENTS, Action.CREATE),
            "addMedicalVisit": can_record_medical_visit_at_intake(session),
            "addDentalVisit": is_permitted(session, Resource.DENTAL_VISIT, Action.CREATE),
        },
    }
