from fastapi import Query
from pydantic import BaseModel

class PageParams(BaseModel):
    limit: int = 50
    offset: int = 0

class Pagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool

def page_params(limit: int = Query(50, ge=1, le=100), offset: int = Query(0, ge=0)) -> PageParams:
    return PageParams(limit=limit, offset=offset)

def paginate(page: PageParams, total: int) -> Pagination:
    return Pagination(limit=page.limit, offset=page.offset, total=total, has_more=total > page.offset + page.limit)
