"""Common Schemas used across the API"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema exchanging camelCase JSON while keeping snake_case attributes"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginatedResponse(CamelModel, Generic[T]):
    items: List[T]
    total: int
    limit: int
    offset: int


class MessageResponse(CamelModel):
    message: str
    id: Optional[int] = None


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    type: Optional[str] = None
