"""
Page/limit query parameters and the {data, meta} envelope shared by list endpoints.
"""
import math
from enum import Enum
from typing import Generic, List, TypeVar

from fastapi import Depends, Query
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel

from app.shared.schemas.base import CamelModel

T = TypeVar("T")


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class SortField(str, Enum):
    CREATED_AT = "createdAt"
    AMOUNT = "amount"
    TYPE = "type"
    SOURCE = "source"
    STATUS = "status"


# wire name -> model attribute
SORT_COLUMNS = {
    SortField.CREATED_AT: "created_at",
    SortField.AMOUNT: "amount",
    SortField.TYPE: "type",
    SortField.SOURCE: "source",
    SortField.STATUS: "status",
}


class PaginationParams(BaseModel):
    page: int = 1
    limit: int = 10
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def sort_column(self) -> str:
        return SORT_COLUMNS[self.sort_by]


def pagination_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: SortField = Query(SortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


# recharge and withdrawal requests carry no type or source column
REQUEST_SORT_FIELDS = (SortField.CREATED_AT, SortField.AMOUNT, SortField.STATUS)


def request_pagination_params(params: PaginationParams = Depends(pagination_params)) -> PaginationParams:
    if params.sort_by not in REQUEST_SORT_FIELDS:
        allowed = ", ".join(f"'{f.value}'" for f in REQUEST_SORT_FIELDS)
        raise RequestValidationError([{
            "type": "enum",
            "loc": ("query", "sortBy"),
            "msg": f"Input should be {allowed}",
            "input": params.sort_by.value,
        }])
    return params


class PageMeta(CamelModel):
    page: int
    limit: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class PaginatedResponse(CamelModel, Generic[T]):
    data: List[T]
    meta: PageMeta

    @classmethod
    def create(cls, data: List[T], total: int, params: PaginationParams) -> "PaginatedResponse[T]":
        total_pages = math.ceil(total / params.limit) if total else 0
        return cls(
            data=data,
            meta=PageMeta(
                page=params.page,
                limit=params.limit,
                total_items=total,
                total_pages=total_pages,
                has_next_page=params.page < total_pages,
                has_previous_page=params.page > 1,
            ),
        )
