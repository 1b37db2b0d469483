"""Shared schema types: camelCase request base, pagination, error envelope."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelRequest(BaseModel):
    """Request bodies accept camelCase keys and snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Any | None = None
