# db/models/zone_definition.py
import uuid
from typing import Optional
from sqlalchemy import Enum as SAEnum, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from page_builder.db.models._base import Base, JSONType
from page_builder.db.enums import ZoneType

class ZoneDefinition(Base):
    __tablename__ = "zone_definition"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    zone_type: Mapped[ZoneType] = mapped_column(SAEnum(ZoneType, name="zone_type"), nullable=False)
    min_items: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_items: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    default_rule: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
