"""Result limits for list endpoints (boards, activity feed, automation logs)."""

from __future__ import annotations

import os
from typing import Optional

from fastapi import Response

DEFAULT_LIMIT = 50
DEFAULT_MAX_LIMIT = 200


def get_max_page_size() -> int:
    try:
        cap = int(os.getenv("API_MAX_PAGE_SIZE", str(DEFAULT_MAX_LIMIT)))
    except ValueError:
        return DEFAULT_MAX_LIMIT
    return cap if cap >= 1 else DEFAULT_MAX_LIMIT


def clamp_limit(limit: Optional[int]) -> int:
    """Bound a requested limit to ``[1, API_MAX_PAGE_SIZE]``."""
    if limit is None:
        limit = DEFAULT_LIMIT
    return max(1, min(int(limit), get_max_page_size()))


def set_pagination_headers(response: Optional[Response], *, total: Optional[int], limit: int) -> None:
    if response is None:
        return
    response.headers["X-Limit"] = str(limit)
    if total is not None:
        response.headers["X-Total-Count"] = str(total)
