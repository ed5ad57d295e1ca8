"""
Which cached reads each mutation makes stale.

INVALIDATES is the one place this is declared. Resource services look their
mutation up here after a successful call instead of naming URLs themselves.
"""

from enum import Enum


class QueryFamily(str, Enum):
    DASHBOARD_KPIS = "dashboard-kpis"
    TOP_DIAGNOSES = "top-diagnoses"
    VISITS_TREND = "visits-trend"
    PATIENT_LIST = "patient-list"
    PATIENT_DETAIL = "patient-detail"
    VISIT_LIST = "visit-list"
    PATIENT_VISITS = "patient-visits"
    MEDICAL_VISIT = "medical-visit"
    DENTAL_VISIT = "dental-visit"
    USER_LIST = "user-list"
    USER_DETAIL = "user-detail"
    AUDIT_LOG = "audit-log"


class Mutation(str, Enum):
    CREATE_PATIENT = "create-patient"
    UPDATE_PATIENT = "update-patient"
    DELETE_PATIENT = "delete-patient"
    IMPORT_PATIENTS = "import-patients"
    EXPORT_PATIENTS = "export-patients"
    CREATE_VISIT = "create-visit"
    UPDATE_VISIT = "update-visit"
    DELETE_VISIT = "delete-visit"
    IMPORT_VISITS = "import-visits"
    EXPORT_VISITS = "export-visits"
    CREATE_USER = "create-user"
    UPDATE_USER = "update-user"
    DELETE_USER = "delete-user"


_VISIT_READS = frozenset({
    QueryFamily.VISIT_LIST,
    QueryFamily.PATIENT_VISITS,
    QueryFamily.DASHBOARD_KPIS,
    QueryFamily.TOP_DIAGNOSES,
    QueryFamily.VISITS_TREND,
})

INVALIDATES: dict[Mutation, frozenset[QueryFamily]] = {
    Mutation.CREATE_PATIENT: frozenset({QueryFamily.PATIENT_LIST}),
    Mutation.UPDATE_PATIENT: frozenset({
        QueryFamily.PATIENT_LIST,
        QueryFamily.PATIENT_DETAIL,
        QueryFamily.VISIT_LIST,
        QueryFamily.AUDIT_LOG,
    }),
    Mutation.DELETE_PATIENT: frozenset({
        QueryFamily.PATIENT_LIST,
        QueryFamily.PATIENT_DETAIL,
        QueryFamily.AUDIT_LOG,
    }) | _VISIT_READS,
    Mutation.IMPORT_PATIENTS: frozenset({QueryFamily.PATIENT_LIST}),
    Mutation.EXPORT_PATIENTS: frozenset(),
    Mutation.CREATE_VISIT: _VISIT_READS,
    Mutation.UPDATE_VISIT: _VISIT_READS | {
        QueryFamily.MEDICAL_VISIT,
        QueryFamily.DENTAL_VISIT,
        QueryFamily.AUDIT_LOG,
    },
    Mutation.DELETE_VISIT: _VISIT_READS | {
        QueryFamily.MEDICAL_VISIT,
        QueryFamily.DENTAL_VISIT,
        QueryFamily.AUDIT_LOG,
    },
    Mutation.IMPORT_VISITS: _VISIT_READS,
    Mutation.EXPORT_VISITS: frozenset(),
    Mutation.CREATE_USER: frozenset({QueryFamily.USER_LIST}),
    Mutation.UPDATE_USER: frozenset({QueryFamily.USER_LIST, QueryFamily.USER_DETAIL}),
    Mutation.DELETE_USER: frozenset({QueryFamily.USER_LIST, QueryFamily.USER_DETAIL}),
}


def families_for(mutation: Mutation) -> frozenset[QueryFamily]:
    return INVALIDATES[mutation]
