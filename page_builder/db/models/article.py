# db/models/article.py
import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from page_builder.db.models._base import Base
from page_builder.db.models.category import Category
from page_builder.db.models.tag import Tag, article_tag
from page_builder.utils.clock import utcnow

class Article(Base):
    __tablename__ = "article"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    slug: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_breaking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("category.id", ondelete="SET NULL"), nullable=True, index=True
    )

    category: Mapped[Optional[Category]] = relationship(lazy="selectin")
    tags: Mapped[List[Tag]] = relationship(secondary=article_tag, lazy="selectin")
