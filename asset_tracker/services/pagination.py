import math

from asset_tracker.core.config import settings


def paginate(query, page: int = 1, limit: int | None = None):
    """
    Apply page/limit to an ordered query.

    Returns ``(items, pagination)`` where pagination mirrors what the list
    endpoints expose.
    """
    page = max(int(page or 1), 1)
    limit = int(limit or settings.DEFAULT_PAGE_SIZE)
    limit = max(1, min(limit, settings.MAX_PAGE_SIZE))

    total = query.order_by(None).count()
    skip = (page - 1) * limit
    items = query.offset(skip).limit(limit).all()

    return items, {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if total else 0,
        "total_records": total,
        "has_next": skip + len(items) < total,
        "has_prev": page > 1,
    }
