from typing import ClassVar, Optional

from clinic_portal.schemas.base import CamelModel, FormModel


class PatientSummary(CamelModel):
    """Row of the patient list projection."""
    id: int
    first_name: str
    last_name: str
    middle_initial: Optional[str] = None
    student_number: Optional[str] = None
    status: Optional[str] = None
    gender: Optional[str] = None
    category: Optional[str] = None
    medical_done: Optional[str] = None
    dental_done: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PatientDetail(CamelModel):
    """Full projection returned by the patient detail endpoint."""
    id: int
    full_name: str
    student_id: Optional[str] = None
    birth_date: Optional[str] = None
    sex: Optional[str] = None
    age: Optional[int] = None
    program: Optional[str] = None
    contact_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_number: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    known_diseases: Optional[str] = None


class PatientCreate(FormModel):
    REQUIRED: ClassVar[tuple] = (
        ("last_name", "Please enter the last name"),
        ("first_name", "Please enter the first name"),
        ("gender", "Please select a gender"),
    )

    last_name: Optional[str] = None
    first_name: Optional[str] = None
    gender: Optional[str] = None
    student_number: Optional[str] = None
    middle_initial: Optional[str] = None
    status: Optional[str] = None
    birth_date: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    bmi: Optional[float] = None
    category: Optional[str] = None
    medical_done: Optional[str] = None
    dental_done: Optional[str] = None
    contact_number: Optional[str] = None
    health_exam_form: Optional[str] = None
    medical_dental_info_sheet: Optional[str] = None
    dental_chart: Optional[str] = None
    special_medical_condition: Optional[str] = None
    communicable_disease: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    emergency_contact_number: Optional[str] = None
    remarks: Optional[str] = None


class PatientUpdate(PatientCreate):
    pass
