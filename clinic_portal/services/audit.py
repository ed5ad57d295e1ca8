from typing import Union

from clinic_portal.schemas.audit import AuditEntity, AuditLogEntry
from clinic_portal.schemas.visit import VisitType
from clinic_portal.services.invalidation import QueryFamily
from clinic_portal.services.query_cache import QueryKey, QueryResult
from clinic_portal.services.resources import ResourceService

VISIT_AUDIT_ENTITIES = {
    VisitType.MEDICAL: AuditEntity.MEDICAL_VISITS,
    VisitType.DENTAL: AuditEntity.DENTAL_VISITS,
}


def _parse(data: list) -> list[AuditLogEntry]:
    return [AuditLogEntry.model_validate(row) for row in data]


class AuditService(ResourceService):
    def key_for(self, entity_name: Union[AuditEntity, str], record_id: int) -> QueryKey:
        entity = AuditEntity(entity_name).value
        return self.key(QueryFamily.AUDIT_LOG, f"/api/audit-logs?entityName={entity}&recordId={record_id}")

    async def audit_logs(self, entity_name: Union[AuditEntity, str], record_id: int) -> QueryResult:
        return await self._query(self.key_for(entity_name, record_id), _parse)
