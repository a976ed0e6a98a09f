"""Common Schemas

Shared base model and response envelopes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, TypeVar, Optional

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base model exchanging camelCase JSON"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class PageMeta(ApiModel):
    """Pagination metadata"""

    page: int
    per_page: int
    total: int
    total_pages: int


class DataResponse(ApiModel, Generic[T]):
    """Single object envelope"""

    data: T


class ListResponse(ApiModel, Generic[T]):
    """Paginated list envelope"""

    data: list[T]
    meta: PageMeta


class MessageResponse(ApiModel):
    """Simple message response"""

    message: str
    id: Optional[int] = None
