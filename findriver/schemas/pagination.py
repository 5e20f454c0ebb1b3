from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

ItemT = TypeVar("ItemT")


class PageResponse(BaseModel, Generic[ItemT]):
    """Page envelope: {items, total, page, pageCount, pageSize, truncated}."""
    items: List[ItemT]
    total: int
    page: int
    page_count: int
    page_size: int
    truncated: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )
