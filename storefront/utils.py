import math
from typing import Any, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

MAX_PAGE_SIZE = 100


# --- Response envelope ---
def success_response(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "message": message, "data": jsonable_encoder(data)},
    )


def error_response(message: str = "Error", status_code: int = 500, code: Optional[str] = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "code": code or f"ERROR_{status_code}"},
        headers=headers,
    )


# --- Pagination ---
def clamp_page(page: Optional[int], limit: Optional[int], default_limit: int = 20, max_limit: int = MAX_PAGE_SIZE) -> Tuple[int, int, int]:
    """Return (page, limit, offset) with page >= 1 and 1 <= limit <= max_limit."""
    page = max(1, page or 1)
    limit = default_limit if limit is None else limit
    limit = max(1, min(max_limit, limit))
    return page, limit, (page - 1) * limit


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "has_more": page * limit < total,
    }


# --- LIKE patterns ---
LIKE_ESCAPE = "\\"


def like_pattern(term: str, template: str = "%{}%") -> str:
    """Substring pattern for ilike with the wildcard characters of `term` escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return template.format(escaped)
