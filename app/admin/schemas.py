"""
Query schemas for the admin listing: pagination, e-mail filter and sorting.
"""
import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.core.config import settings


class SortField(str, Enum):
    """Columns the listing may be sorted by."""
    CREATED_AT = "created_at"
    EMAIL = "email"
    PURCHASE_PRICE = "purchase_price"
    MONTHLY_RENT = "monthly_rent"
    ANNUAL_FEE = "annual_fee"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class AdminListQuery(BaseModel):
    """Validated query string of /admin/simulations."""
    page: int = Field(settings.PAGINATION_DEFAULT_PAGE, ge=1)
    limit: int = Field(settings.PAGINATION_DEFAULT_LIMIT, ge=1, le=settings.PAGINATION_MAX_LIMIT)
    email: Optional[str] = Field(None, max_length=settings.EMAIL_MAX_LENGTH)
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_means_no_filter(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(BaseModel):
    """Page metadata rendered under the listing."""
    current_page: int
    total_pages: int
    total: int
    limit: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total=total,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1
        )

    @classmethod
    def empty(cls) -> "Pagination":
        return cls.build(settings.PAGINATION_DEFAULT_PAGE, settings.PAGINATION_DEFAULT_LIMIT, 0)
