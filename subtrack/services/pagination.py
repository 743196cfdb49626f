from typing import Any, Dict


def build_pagination(page: int, limit: int, total: int, total_key: str = "total") -> Dict[str, Any]:
    """Paging metadata for skip/limit listings."""
    total_pages = -(-total // limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        total_key: total,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }
