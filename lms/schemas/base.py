from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ORMModel(BaseModel):
    # Wire format is camelCase; snake_case field names are accepted on input too.
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class Page(ORMModel):
    total: int
    limit: int
    offset: int
