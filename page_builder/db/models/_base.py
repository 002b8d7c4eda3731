# db/models/_base.py
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere. SQL NULL (not JSON null) for None.
JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")

class Base(DeclarativeBase):
    pass
