# db/models/zone.py
import uuid
from typing import List, Optional
from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from page_builder.db.models._base import Base, JSONType
from page_builder.db.models.zone_definition import ZoneDefinition

class PageZone(Base):
    __tablename__ = "page_zone"
    __table_args__ = (
        UniqueConstraint("page_id", "zone_definition_id", name="uq_page_zone_page_definition"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    page_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("page.id", ondelete="CASCADE"), nullable=False, index=True)
    zone_definition_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("zone_definition.id", ondelete="RESTRICT"), nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    custom_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    auto_fill_rule: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    page = relationship("Page", back_populates="zones")
    zone_definition: Mapped[ZoneDefinition] = relationship(lazy="joined")
    placements: Mapped[List["ContentPlacement"]] = relationship(
        back_populates="zone", cascade="all, delete-orphan", passive_deletes=True,
        order_by="ContentPlacement.position",
    )
