# db/models/page.py
import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from page_builder.db.models._base import Base
from page_builder.db.enums import PageType
from page_builder.utils.clock import utcnow

class Page(Base):
    __tablename__ = "page"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    page_type: Mapped[PageType] = mapped_column(SAEnum(PageType, name="page_type"), nullable=False, default=PageType.CUSTOM)
    stock_symbol: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("category.id", ondelete="SET NULL"), nullable=True, index=True
    )

    zones: Mapped[List["PageZone"]] = relationship(
        back_populates="page", cascade="all, delete-orphan", passive_deletes=True
    )
