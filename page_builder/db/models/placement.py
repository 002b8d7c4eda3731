# db/models/placement.py
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, Enum as SAEnum, ForeignKey, Integer, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from page_builder.db.models._base import Base, JSONType
from page_builder.db.enums import ContentType
from page_builder.utils.clock import utcnow

class ContentPlacement(Base):
    __tablename__ = "content_placement"
    __table_args__ = (
        UniqueConstraint("zone_id", "position", name="uq_content_placement_zone_position"),
        CheckConstraint("position >= 0", name="ck_content_placement_position"),
        CheckConstraint(
            "(CASE WHEN article_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN video_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN custom_content IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_content_placement_single_reference",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    zone_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("page_zone.id", ondelete="CASCADE"), nullable=False)
    content_type: Mapped[ContentType] = mapped_column(SAEnum(ContentType, name="content_type"), nullable=False)
    article_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("article.id", ondelete="CASCADE"), nullable=True, index=True
    )
    video_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("video.id", ondelete="CASCADE"), nullable=True, index=True
    )
    custom_content: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    zone = relationship("PageZone", back_populates="placements")
