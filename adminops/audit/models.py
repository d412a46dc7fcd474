"""Audit log data models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from adminops.errors import RecordValidationError


class EventKind(str, Enum):
    FILE_DELETED = "FileDeleted"
    RETENTION_LABEL_APPLIED = "TagApplied"
    RETENTION_LABEL_REMOVED = "TagRemoved"


class QueryStatus(str, Enum):
    NOT_STARTED = "notStarted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class AuditQuery:
    start: datetime
    end: datetime
    operations: list[EventKind]
    display_name: str = "Data lifecycle events"

    def to_payload(self) -> dict:
        return {
            "@odata.type": "#microsoft.graph.security.auditLogQuery",
            "displayName": self.display_name,
            "filterStartDateTime": _iso(self.start),
            "filterEndDateTime": _iso(self.end),
            "operationFilters": [op.value for op in self.operations],
        }


def _iso(dt: datetime) -> str:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class AuditEventRecord:
    id: str
    created: str
    operation: str
    record_type: str = ""
    service: str = ""
    user_id: str = ""
    user_principal_name: str = ""
    user_type: str = ""
    object_id: str = ""
    client_ip: str = ""
    organization_id: str = ""
    audit_data: dict = field(default_factory=dict)

    @classmethod
    def from_graph(cls, raw: Any) -> AuditEventRecord:
        """Build a record from one ``auditLogRecord`` JSON object."""
        if not isinstance(raw, dict):
            raise RecordValidationError(
                f"Audit record must be an object, got {type(raw).__name__}"
            )
        missing = [
            key for key in ("id", "operation", "createdDateTime")
            if not raw.get(key)
        ]
        if missing:
            raise RecordValidationError(
                f"Audit record {raw.get('id', '?')} is missing {', '.join(missing)}"
            )
        audit_data = raw.get("auditData") or {}
        if not isinstance(audit_data, dict):
            raise RecordValidationError(
                f"Audit record {raw['id']} has non-object auditData"
            )
        return cls(
            id=str(raw["id"]),
            created=str(raw["createdDateTime"]),
            operation=str(raw["operation"]),
            record_type=_text(raw.get("auditLogRecordType")),
            service=_text(raw.get("service")),
            user_id=_text(raw.get("userId")),
            user_principal_name=_text(raw.get("userPrincipalName")),
            user_type=_text(raw.get("userType")),
            object_id=_text(raw.get("objectId")),
            client_ip=_text(raw.get("clientIp")),
            organization_id=_text(raw.get("organizationId")),
            audit_data=audit_data,
        )

    def to_row(self) -> dict[str, str]:
        row = {}
        for column, attr in EXPORT_COLUMNS.items():
            value = getattr(self, attr)
            if isinstance(value, dict):
                value = json.dumps(value, sort_keys=True)
            row[column] = value
        return row


# Column -> AuditEventRecord field
EXPORT_COLUMNS: dict[str, str] = {
    "Id": "id",
    "CreationDate": "created",
    "Operation": "operation",
    "RecordType": "record_type",
    "Service": "service",
    "UserId": "user_id",
    "UserPrincipalName": "user_principal_name",
    "UserType": "user_type",
    "ObjectId": "object_id",
    "ClientIP": "client_ip",
    "OrganizationId": "organization_id",
    "AuditData": "audit_data",
}


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass
class SearchResult:
    query_id: str
    records: list[AuditEventRecord]
    truncated: bool = False


@dataclass
class ExportResult:
    path: str
    rows: int
    truncated: bool
    query_id: str = ""
