# db/schemas/zone_definition.py
import uuid
from typing import Any, Optional
from pydantic import Field, field_validator
from page_builder.config import Settings
from page_builder.db.enums import ZoneType
from page_builder.db.schemas._base import OrmModel
from page_builder.db.schemas.auto_fill import AutoFillRule

class ZoneDefinitionBase(OrmModel):
    name: str
    slug: str
    zone_type: ZoneType
    description: Optional[str] = None
    min_items: int = Field(default=1, ge=0)
    max_items: int = Field(default_factory=lambda: Settings().default_zone_max_items, ge=0)
    default_rule: Optional[AutoFillRule] = None

    @field_validator("default_rule", mode="before")
    @classmethod
    def _drop_rule_without_source(cls, value: Any) -> Any:
        if isinstance(value, dict) and not value.get("source"):
            return None
        return value

class ZoneDefinitionCreate(ZoneDefinitionBase): ...
class ZoneDefinitionRead(ZoneDefinitionBase):
    id: uuid.UUID
