# db/schemas/page.py
import uuid
from datetime import datetime
from typing import Optional
from page_builder.db.schemas._base import OrmModel
from page_builder.db.enums import PageType
from page_builder.utils.sentinels import Missing

class PageBase(OrmModel):
    name: str
    slug: str
    page_type: PageType = PageType.CUSTOM
    category_id: Optional[uuid.UUID] = None
    stock_symbol: Optional[str] = None
    is_active: bool = True

class PageCreate(PageBase): ...
class PageUpdate(OrmModel):
    id: uuid.UUID
    name: str | Missing = Missing()
    slug: str | Missing = Missing()
    page_type: PageType | Missing = Missing()
    category_id: uuid.UUID | Missing | None = Missing()
    stock_symbol: str | Missing | None = Missing()
    is_active: bool | Missing = Missing()

class PageRead(PageBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
