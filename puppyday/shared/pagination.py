"""Paginated list responses"""

import math

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100


def paginated(data: list, page: int, limit: int, total: int) -> dict:
    return {
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }
