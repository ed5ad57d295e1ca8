"""Client-side filtering and paging used by the list surfaces."""

from dataclasses import dataclass
from math import ceil
from typing import Optional, Sequence, TypeVar

from clinic_portal.schemas.patient import PatientSummary
from clinic_portal.schemas.user import UserAccount

T = TypeVar("T")

ALL = "all"
VISITS_PER_PAGE = 10


def _matches(choice: Optional[str], value: Optional[str]) -> bool:
    return not choice or choice == ALL or value == choice


def filter_patients(
    patients: Sequence[PatientSummary],
    search: str = "",
    status: str = ALL,
    gender: str = ALL,
    last_name_letter: str = ALL,
) -> list[PatientSummary]:
    needle = (search or "").lower()
    letter = (last_name_letter or ALL).upper()
    result = []
    for patient in patients:
        if needle and needle not in patient.full_name.lower() and needle not in (patient.student_number or "").lower():
            continue
        if not _matches(status, patient.status) or not _matches(gender, patient.gender):
            continue
        if letter != ALL.upper() and not patient.last_name.upper().startswith(letter):
            continue
        result.append(patient)
    return result


def filter_users(users: Sequence[UserAccount], search: str = "", role: str = ALL) -> list[UserAccount]:
    needle = (search or "").lower()
    return [
        u for u in users
        if (not needle or needle in u.username.lower()) and _matches(role, u.role)
    ]


def filter_visits(visits: Sequence[T], visit_filter: str = ALL) -> list[T]:
    """visit_filter is "all", "medical" or "dental"."""
    wanted = (visit_filter or ALL).lower()
    if wanted == ALL:
        return list(visits)
    return [v for v in visits if getattr(v, "visit_type", "").lower() == wanted]


@dataclass
class Page:
    items: list
    page: int
    total_pages: int
    total_items: int


def paginate(items: Sequence[T], page: int = 1, per_page: int = VISITS_PER_PAGE) -> Page:
    total_pages = max(1, ceil(len(items) / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return Page(list(items[start:start + per_page]), page, total_pages, len(items))
