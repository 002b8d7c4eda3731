# db/schemas/audit_log.py
import uuid
from datetime import datetime
from typing import Any, Optional
from pydantic import Field
from page_builder.db.schemas._base import OrmModel

class AuditLogCreate(OrmModel):
    action: str
    actor_id: Optional[uuid.UUID] = None
    payload: dict[str, Any] = Field(default_factory=dict)

class AuditLogRead(AuditLogCreate):
    """One recorded editorial action; ``payload`` carries args, result or error."""
    id: uuid.UUID
    created_at: datetime
