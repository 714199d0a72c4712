from math import ceil

from pydantic import BaseModel


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=ceil(total_count / limit) if limit else 0,
            total_count=total_count,
            has_next=page * limit < total_count,
            has_prev=page > 1,
        )
