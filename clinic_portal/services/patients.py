from typing import Optional

from clinic_portal.schemas.patient import PatientCreate, PatientDetail, PatientSummary, PatientUpdate
from clinic_portal.services.invalidation import Mutation, QueryFamily
from clinic_portal.services.query_cache import Listener, QueryKey, QueryResult, Subscription
from clinic_portal.services.resources import FileUpload, ResourceService

EXPORT_FILENAME = "patients.csv"


def _parse_list(data: list) -> list[PatientSummary]:
    return [PatientSummary.model_validate(row) for row in data]


def _parse_detail(data: dict) -> PatientDetail:
    return PatientDetail.model_validate(data)


class PatientService(ResourceService):
    def list_key(self) -> QueryKey:
        return self.key(QueryFamily.PATIENT_LIST, "/api/patients-list")

    def detail_key(self, patient_id: int) -> QueryKey:
        return self.key(QueryFamily.PATIENT_DETAIL, f"/api/patients/{patient_id}")

    async def patients_list(self) -> QueryResult:
        return await self._query(self.list_key(), _parse_list)

    async def patient(self, patient_id: int) -> QueryResult:
        return await self._query(self.detail_key(patient_id), _parse_detail)

    def watch_patients_list(self, listener: Optional[Listener] = None) -> Subscription:
        return self._subscribe(self.list_key(), self.settings.list_refresh_seconds, listener, _parse_list)

    async def get_patient(self, patient_id: int) -> PatientDetail:
        data = await self._get(f"/api/patients/{patient_id}", "Fetch patient")
        return _parse_detail(data)

    async def create_patient(self, data: PatientCreate):
        data.validate_required()
        return await self._mutate(
            Mutation.CREATE_PATIENT, "POST", "/api/add-patient", "Create patient", json=data.to_wire()
        )

    async def update_patient(self, patient_id: int, data: PatientUpdate):
        data.validate_required()
        return await self._mutate(
            Mutation.UPDATE_PATIENT, "PUT", f"/api/update-patient/{patient_id}", "Update patient",
            json=data.to_wire(),
        )

    async def delete_patient(self, patient_id: int) -> None:
        await self._mutate(
            Mutation.DELETE_PATIENT, "DELETE", f"/api/delete-patient/{patient_id}", "Delete patient"
        )

    async def import_patients(self, upload: FileUpload):
        return await self._import(Mutation.IMPORT_PATIENTS, "/api/patients/import", upload, "Import patients")

    async def export_patients(self) -> None:
        await self._export("/api/patients/export", EXPORT_FILENAME, "Export patients")
