# db/schemas/zone.py
import uuid
from typing import Any, Optional
from pydantic import field_validator
from page_builder.db.schemas._base import OrmModel
from page_builder.db.schemas.auto_fill import AutoFillRule
from page_builder.db.schemas.zone_definition import ZoneDefinitionRead
from page_builder.utils.sentinels import Missing

class ZoneCreate(OrmModel):
    page_id: uuid.UUID
    zone_definition_id: uuid.UUID
    custom_name: Optional[str] = None
    is_enabled: bool = True
    sort_order: Optional[int] = None
    auto_fill_rule: Optional[AutoFillRule] = None

class ZoneUpdate(OrmModel):
    id: uuid.UUID
    custom_name: str | Missing | None = Missing()
    is_enabled: bool | Missing = Missing()
    sort_order: int | Missing = Missing()
    auto_fill_rule: AutoFillRule | Missing | None = Missing()

class ZoneRead(OrmModel):
    id: uuid.UUID
    page_id: uuid.UUID
    zone_definition_id: uuid.UUID
    sort_order: int
    is_enabled: bool
    custom_name: Optional[str] = None
    auto_fill_rule: Optional[AutoFillRule] = None
    zone_definition: ZoneDefinitionRead

    @field_validator("auto_fill_rule", mode="before")
    @classmethod
    def _drop_rule_without_source(cls, value: Any) -> Any:
        # A stored rule with no source selects nothing.
        if isinstance(value, dict) and not value.get("source"):
            return None
        return value

    @property
    def display_name(self) -> str:
        return self.custom_name or self.zone_definition.name

    @property
    def max_items(self) -> int:
        return self.zone_definition.max_items
