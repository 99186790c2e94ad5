"""
Response envelope shared by every endpoint.

    {"success": true,  "message": ..., "data": ..., "meta": {...}}   # meta on lists only
    {"success": false, "message": ..., "error": {"code", "details", "field"}}
"""

from typing import Any

from fastapi import Query
from pydantic import BaseModel

from fleetdesk.config import settings


class Page(BaseModel):
    page:  int = 1
    limit: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict:
        total_pages = (total + self.limit - 1) // self.limit
        return {
            "page":       self.page,
            "limit":      self.limit,
            "total":      total,
            "totalPages": total_pages,
            "hasNext":    self.page < total_pages,
            "hasPrev":    self.page > 1,
        }


def page_params(
    page:  int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.BOOKING_PAGE_LIMIT_MAX),
) -> Page:
    """``?page=&limit=`` for list endpoints."""
    return Page(page=page, limit=limit)


def success_response(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": data}


def paginated_response(message: str, data: list, total: int, page: Page) -> dict:
    return {**success_response(message, data), "meta": page.meta(total)}


def error_body(code: str, details: list | None = None, field: str | None = None) -> dict:
    return {"code": code, "details": details, "field": field}


def error_response(message: str, error: dict) -> dict:
    return {"success": False, "message": message, "error": error}
