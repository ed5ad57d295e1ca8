"""
Authorization guard: which roles may see or do what.

These checks decide what the portal offers; they are not a security boundary.
The decoded role is an unverified hint and the clinic API enforces every
permission on its own. Pages check at render time (evaluate) and handlers
check again before dispatching (require).
"""

from enum import Enum
from typing import Optional

from clinic_portal.auth import Role, UserSession
from clinic_portal.exceptions import AccessDenied, Unauthenticated
from clinic_portal.schemas.visit import VisitType
from clinic_portal.session import SessionManager


class Resource(str, Enum):
    DASHBOARD = "dashboard"
    PATIENTS = "patients"
    VISITS = "visits"
    MEDICAL_VISIT = "medical-visit"
    DENTAL_VISIT = "dental-visit"
    USERS = "users"
    HELP = "help"


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    IMPORT = "import"
    EXPORT = "export"


class Decision(str, Enum):
    PENDING = "pending"
    LOGIN_REQUIRED = "login-required"
    DENIED = "denied"
    PERMITTED = "permitted"


CLINICAL = frozenset({Role.MD, Role.DMD, Role.NURSE})
MD_ONLY = frozenset({Role.MD})
DMD_ONLY = frozenset({Role.DMD})
ADMIN_ONLY = frozenset({Role.ADMIN})

# The add-medical-visit surface lets nurses record a visit...
MEDICAL_VISIT_INTAKE_ROLES = frozenset({Role.MD, Role.NURSE})
# ...while the visit-detail surface lets only MDs edit or delete one.
# The two rules disagree for NURSE; both are kept until product decides.
MEDICAL_VISIT_RECORD_ROLES = MD_ONLY
DENTAL_VISIT_RECORD_ROLES = DMD_ONLY
# Entry to the edit surface, before the per-type check above.
VISIT_EDIT_SURFACE_ROLES = frozenset({Role.MD, Role.DMD})

POLICY: dict[tuple[Resource, Action], frozenset[Role]] = {
    (Resource.DASHBOARD, Action.VIEW): CLINICAL,
    (Resource.HELP, Action.VIEW): CLINICAL,
    (Resource.PATIENTS, Action.VIEW): CLINICAL,
    (Resource.PATIENTS, Action.CREATE): CLINICAL,
    (Resource.PATIENTS, Action.EDIT): CLINICAL,
    (Resource.PATIENTS, Action.DELETE): CLINICAL,
    (Resource.PATIENTS, Action.IMPORT): CLINICAL,
    (Resource.PATIENTS, Action.EXPORT): CLINICAL,
    (Resource.VISITS, Action.VIEW): CLINICAL,
    (Resource.VISITS, Action.IMPORT): CLINICAL,
    (Resource.VISITS, Action.EXPORT): CLINICAL,
    (Resource.MEDICAL_VISIT, Action.VIEW): CLINICAL,
    (Resource.MEDICAL_VISIT, Action.CREATE): MEDICAL_VISIT_RECORD_ROLES,
    (Resource.MEDICAL_VISIT, Action.EDIT): MEDICAL_VISIT_RECORD_ROLES,
    (Resource.MEDICAL_VISIT, Action.DELETE): MEDICAL_VISIT_RECORD_ROLES,
    (Resource.DENTAL_VISIT, Action.VIEW): CLINICAL,
    (Resource.DENTAL_VISIT, Action.CREATE): DENTAL_VISIT_RECORD_ROLES,
    (Resource.DENTAL_VISIT, Action.EDIT): DENTAL_VISIT_RECORD_ROLES,
    (Resource.DENTAL_VISIT, Action.DELETE): DENTAL_VISIT_RECORD_ROLES,
    (Resource.USERS, Action.VIEW): ADMIN_ONLY,
    (Resource.USERS, Action.CREATE): ADMIN_ONLY,
    (Resource.USERS, Action.EDIT): ADMIN_ONLY,
    (Resource.USERS, Action.DELETE): ADMIN_ONLY,
}

VISIT_RESOURCES = {
    VisitType.MEDICAL: Resource.MEDICAL_VISIT,
    VisitType.DENTAL: Resource.DENTAL_VISIT,
}


def _has_role(session: Optional[UserSession], roles: frozenset[Role]) -> bool:
    if session is None:
        return False
    role = session.known_role
    return role is not None and role in roles


def is_permitted(session: Optional[UserSession], resource: Resource, action: Action) -> bool:
    roles = POLICY.get((Resource(resource), Action(action)))
    if roles is None:
        return False
    return _has_role(session, roles)


def can_record_medical_visit_at_intake(session: Optional[UserSession]) -> bool:
    return _has_role(session, MEDICAL_VISIT_INTAKE_ROLES)


def can_modify_visit(session: Optional[UserSession], visit_type: VisitType) -> bool:
    """Edit/delete rule applied on the visit-detail surface."""
    return is_permitted(session, VISIT_RESOURCES[VisitType(visit_type)], Action.EDIT)


def can_open_visit_editor(session: Optional[UserSession]) -> bool:
    return _has_role(session, VISIT_EDIT_SURFACE_ROLES)


def permission_message(visit_type: Optional[VisitType]) -> str:
    if visit_type == VisitType.MEDICAL:
        return "Only users with MD role can edit or delete medical visits."
    if visit_type == VisitType.DENTAL:
        return "Only users with DMD role can edit or delete dental visits."
    return "You do not have permission to edit or delete this visit."


def evaluate(manager: SessionManager, resource: Resource, action: Action = Action.VIEW) -> Decision:
    """Render-time decision for a gated surface."""
    if manager.is_loading:
        return Decision.PENDING
    if manager.session is None:
        return Decision.LOGIN_REQUIRED
    if is_permitted(manager.session, resource, action):
        return Decision.PERMITTED
    return Decision.DENIED


def require(session: Optional[UserSession], resource: Resource, action: Action) -> UserSession:
    """Dispatch-time check; raises instead of returning a decision."""
    if session is None:
        raise Unauthenticated("Not signed in")
    if not is_permitted(session, resource, action):
        raise AccessDenied(Resource(resource).value, Action(action).value, session.role)
    return session
