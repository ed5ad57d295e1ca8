"""
Medical and dental visits.

The two variants live in separate endpoint families, so every single-visit
operation takes a VisitType and routes on it. Only the read-all lists are
unified, as a union tagged by `visitType`.
"""

from typing import Optional, Union

from clinic_portal.schemas.visit import (
    VISIT_FORMS,
    VISIT_MODELS,
    DentalVisit,
    MedicalVisit,
    VisitForm,
    VisitType,
    visit_list_adapter,
)
from clinic_portal.services.invalidation import Mutation, QueryFamily
from clinic_portal.services.query_cache import Listener, QueryKey, QueryResult, Subscription
from clinic_portal.services.resources import FileUpload, ResourceService

EXPORT_FILENAME = "visits.csv"

VISIT_PATHS = {
    VisitType.MEDICAL: "/api/visits/medical",
    VisitType.DENTAL: "/api/visits/dental",
}

VISIT_FAMILIES = {
    VisitType.MEDICAL: QueryFamily.MEDICAL_VISIT,
    VisitType.DENTAL: QueryFamily.DENTAL_VISIT,
}


def _parse_list(data: list) -> list[Union[MedicalVisit, DentalVisit]]:
    return visit_list_adapter.validate_python(data)


def multipart_body(form: VisitForm, images: Optional[dict[str, FileUpload]] = None) -> list:
    """Every field goes as a multipart part, even without an attachment."""
    images = images or {}
    unknown = set(images) - set(form.IMAGE_FIELDS)
    if unknown:
        raise ValueError(f"Unexpected image fields for {type(form).__name__}: {sorted(unknown)}")
    parts = [(name, (None, value)) for name, value in form.form_fields().items()]
    parts.extend((name, upload.as_part()) for name, upload in images.items())
    return parts


class VisitService(ResourceService):
    def list_key(self) -> QueryKey:
        return self.key(QueryFamily.VISIT_LIST, "/api/visits-list")

    def patient_visits_key(self, patient_id: int) -> QueryKey:
        return self.key(QueryFamily.PATIENT_VISITS, f"/api/visits-list/patient/{patient_id}")

    def visit_key(self, visit_type: VisitType, visit_id: int) -> QueryKey:
        visit_type = VisitType(visit_type)
        return self.key(VISIT_FAMILIES[visit_type], f"{VISIT_PATHS[visit_type]}/{visit_id}")

    async def visits(self) -> QueryResult:
        return await self._query(self.list_key(), _parse_list)

    async def patient_visits(self, patient_id: int) -> QueryResult:
        return await self._query(self.patient_visits_key(patient_id), _parse_list)

    async def visit(self, visit_type: VisitType, visit_id: int) -> QueryResult:
        model = VISIT_MODELS[VisitType(visit_type)]
        return await self._query(self.visit_key(visit_type, visit_id), model.model_validate)

    def watch_visits(self, listener: Optional[Listener] = None) -> Subscription:
        return self._subscribe(self.list_key(), self.settings.list_refresh_seconds, listener, _parse_list)

    def watch_patient_visits(self, patient_id: int, listener: Optional[Listener] = None) -> Subscription:
        return self._subscribe(
            self.patient_visits_key(patient_id), self.settings.list_refresh_seconds, listener, _parse_list
        )

    async def get_visit(self, visit_type: VisitType, visit_id: int) -> Union[MedicalVisit, DentalVisit]:
        visit_type = VisitType(visit_type)
        data = await self._get(f"{VISIT_PATHS[visit_type]}/{visit_id}", f"Fetch {visit_type.value.lower()} visit")
        return VISIT_MODELS[visit_type].model_validate(data)

    def _check_form(self, visit_type: VisitType, form: VisitForm) -> None:
        expected = VISIT_FORMS[visit_type]
        if not isinstance(form, expected):
            raise TypeError(f"{visit_type.value} visits take a {expected.__name__}")
        form.validate_required()

    async def create_visit(self, visit_type: VisitType, form: VisitForm,
                           images: Optional[dict[str, FileUpload]] = None):
        visit_type = VisitType(visit_type)
        self._check_form(visit_type, form)
        return await self._mutate(
            Mutation.CREATE_VISIT, "POST", f"{VISIT_PATHS[visit_type]}/add",
            f"Create {visit_type.value.lower()} visit", files=multipart_body(form, images),
        )

    async def update_visit(self, visit_type: VisitType, visit_id: int, form: VisitForm,
                           images: Optional[dict[str, FileUpload]] = None):
        visit_type = VisitType(visit_type)
        self._check_form(visit_type, form)
        return await self._mutate(
            Mutation.UPDATE_VISIT, "PUT", f"{VISIT_PATHS[visit_type]}/update/{visit_id}",
            f"Update {visit_type.value.lower()} visit", files=multipart_body(form, images),
        )

    async def delete_visit(self, visit_type: VisitType, visit_id: int) -> None:
        visit_type = VisitType(visit_type)
        await self._mutate(
            Mutation.DELETE_VISIT, "DELETE", f"{VISIT_PATHS[visit_type]}/delete/{visit_id}",
            f"Delete {visit_type.value.lower()} visit",
        )

    async def import_visits(self, upload: FileUpload):
        return await self._import(Mutation.IMPORT_VISITS, "/api/visits/import", upload, "Import visits")

    async def export_visits(self) -> None:
        await self._export("/api/visits/export", EXPORT_FILENAME, "Export visits")
