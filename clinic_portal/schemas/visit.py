import json
from enum import Enum
from typing import Annotated, ClassVar, Literal, Mapping, Optional, Union

from pydantic import Field, TypeAdapter

from clinic_portal.exceptions import ValidationError
from clinic_portal.schemas.base import CamelModel, FormModel


class VisitType(str, Enum):
    MEDICAL = "MEDICAL"
    DENTAL = "DENTAL"

    @classmethod
    def parse(cls, value: Optional[str]) -> "VisitType":
        """Query-string discriminator; MEDICAL when absent."""
        if not value:
            return cls.MEDICAL
        try:
            return cls(value.upper())
        except ValueError:
            raise ValidationError("type", f"Unknown visit type: {value}") from None


# ---------------------------------------------------------------------------
# Dental chart
# ---------------------------------------------------------------------------

class ToothStatus(str, Enum):
    CARIES = "C"
    EXTRACTION = "X"
    NO_CARIES = "V"
    UNSET = ""


# FDI notation, in chart order
UPPER_TEETH = ("18", "17", "16", "15", "14", "13", "12", "11",
               "21", "22", "23", "24", "25", "26", "27", "28")
LOWER_TEETH = ("48", "47", "46", "45", "44", "43", "42", "41",
               "31", "32", "33", "34", "35", "36", "37", "38")
TOOTH_CODES = frozenset(UPPER_TEETH + LOWER_TEETH)


def _check_code(code: str) -> str:
    if code not in TOOTH_CODES:
        raise ValueError(f"Unknown tooth code: {code!r}")
    return code


class ToothChart:
    """Tooth code -> status. Teeth missing from the map are Unset."""

    def __init__(self, statuses: Optional[Mapping[str, str]] = None):
        self._statuses: dict[str, ToothStatus] = {}
        for code, value in (statuses or {}).items():
            self.set(code, ToothStatus(value))

    @classmethod
    def from_json(cls, text: Optional[str]) -> "ToothChart":
        if not text:
            return cls()
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Tooth status must be a JSON object")
        return cls(data)

    def status(self, code: str) -> ToothStatus:
        return self._statuses.get(_check_code(code), ToothStatus.UNSET)

    def set(self, code: str, status: ToothStatus) -> None:
        _check_code(code)
        if status is ToothStatus.UNSET:
            self._statuses.pop(code, None)
        else:
            self._statuses[code] = status

    def toggle(self, code: str, status: ToothStatus) -> ToothStatus:
        """Set a status, or clear it when the tooth already has it."""
        new = ToothStatus.UNSET if self.status(code) is status else status
        self.set(code, new)
        return new

    def to_dict(self) -> dict[str, str]:
        return {code: status.value for code, status in self._statuses.items()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ToothChart) and self._statuses == other._statuses

    def __len__(self) -> int:
        return len(self._statuses)


# ---------------------------------------------------------------------------
# Records read from the API
# ---------------------------------------------------------------------------

class PatientName(CamelModel):
    first_name: str
    last_name: str


class VisitEnvelope(CamelModel):
    id: int
    patient_id: Optional[int] = None
    full_name: Optional[str] = None
    patient: Optional[PatientName] = None
    visit_date: str
    chief_complaint: Optional[str] = None
    temperature: Optional[float] = None
    blood_pressure: Optional[str] = None
    pulse_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    spo2: Optional[float] = None
    history: Optional[str] = None
    physical_exam_findings: Optional[str] = None
    diagnosis: Optional[str] = None
    plan: Optional[str] = None
    treatment: Optional[str] = None


class MedicalVisit(VisitEnvelope):
    visit_type: Literal["MEDICAL"] = "MEDICAL"
    symptoms: Optional[str] = None
    hama: Optional[str] = None
    referral_form: Optional[str] = None
    nurse_notes: Optional[str] = None
    medical_chart_image: Optional[str] = None


class DentalVisit(VisitEnvelope):
    visit_type: Literal["DENTAL"] = "DENTAL"
    diagnostic_test_result: Optional[str] = None
    tooth_status: Optional[str] = None
    dental_chart_image: Optional[str] = None
    diagnostic_test_image: Optional[str] = None

    @property
    def tooth_chart(self) -> ToothChart:
        return ToothChart.from_json(self.tooth_status)


VisitListItem = Annotated[Union[MedicalVisit, DentalVisit], Field(discriminator="visit_type")]

visit_list_adapter = TypeAdapter(list[VisitListItem])

VISIT_MODELS = {
    VisitType.MEDICAL: MedicalVisit,
    VisitType.DENTAL: DentalVisit,
}


# ---------------------------------------------------------------------------
# Forms submitted to the API
# ---------------------------------------------------------------------------

class VisitForm(FormModel):
    REQUIRED: ClassVar[tuple] = (
        ("patient_id", "Please select a patient"),
        ("visit_date", "Please enter a visit date"),
        ("chief_complaint", "Please enter the chief complaint"),
    )
    # Multipart fields that may carry an uploaded image
    IMAGE_FIELDS: ClassVar[tuple[str, ...]] = ()

    patient_id: Optional[str] = None
    visit_date: Optional[str] = None
    chief_complaint: Optional[str] = None
    temperature: Optional[str] = None
    blood_pressure: Optional[str] = None
    pulse_rate: Optional[str] = None
    respiratory_rate: Optional[str] = None
    spo2: Optional[str] = None
    history: Optional[str] = None
    physical_exam_findings: Optional[str] = None
    diagnosis: Optional[str] = None
    plan: Optional[str] = None
    treatment: Optional[str] = None

    def form_fields(self) -> dict[str, str]:
        return {k: str(v) for k, v in self.to_wire().items()}


class MedicalVisitForm(VisitForm):
    IMAGE_FIELDS: ClassVar[tuple[str, ...]] = ("medicalChartImage",)

    symptoms: Optional[str] = None
    hama: Optional[str] = None
    referral_form: Optional[str] = None
    nurse_notes: Optional[str] = None


class DentalVisitForm(VisitForm):
    IMAGE_FIELDS: ClassVar[tuple[str, ...]] = ("dentalChartImage", "diagnosticTestImage")

    diagnostic_test_result: Optional[str] = None
    tooth_status: Optional[str] = None

    @classmethod
    def with_chart(cls, chart: ToothChart, **values) -> "DentalVisitForm":
        return cls(tooth_status=chart.to_json(), **values)


VISIT_FORMS = {
    VisitType.MEDICAL: MedicalVisitForm,
    VisitType.DENTAL: DentalVisitForm,
}
