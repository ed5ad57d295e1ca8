from datetime import datetime
from enum import Enum
from typing import Optional

from clinic_portal.schemas.base import CamelModel


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditEntity(str, Enum):
    PATIENTS = "Patients"
    MEDICAL_VISITS = "MedicalVisits"
    DENTAL_VISITS = "DentalVisits"


class AuditLogEntry(CamelModel):
    id: int
    action: AuditAction
    username: str
    timestamp: datetime
    details: Optional[str] = None
