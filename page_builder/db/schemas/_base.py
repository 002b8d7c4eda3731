from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

class CamelModel(BaseModel):
    """Accepts both camelCase (stored rule JSON) and snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
