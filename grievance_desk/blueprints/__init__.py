"""
Grievance Desk
Blueprint registry.
"""

from flask import request


def pagination_args(default_limit=200, max_limit=1000):
    """Read limit/offset pagination from the query string.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (limit, offset)
    """
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return limit, offset


def paginated(items, total, limit, offset):
    return {"items": items, "total": total, "limit": limit, "offset": offset}
