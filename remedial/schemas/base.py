"""Shared pydantic base: snake_case in Python, camelCase on the wire."""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelSchema(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class StudentOutSchema(CamelSchema):
    id: int
    lrn: str | None = None
    name: str
