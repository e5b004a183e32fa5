"""Query-string parsing shared by every activity listing endpoint."""

from typing import Annotated, List, Literal, Optional

from fastapi import Depends, HTTPException, Query, status

from app.models.activity import get_difficulty_value
from app.schemas.activity import ActivityQuery, NumberRange, SortBy, SortKey

MAX_PAGE_SIZE = 100

OrderParam = Literal["asc", "desc", "ascending", "descending", "1", "-1"]


def _difficulty(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return get_difficulty_value(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bad Request",
        )


def _range(minimum: Optional[int], maximum: Optional[int]) -> Optional[NumberRange]:
    if minimum is None and maximum is None:
        return None
    return NumberRange(min=minimum, max=maximum)


def _sort_by(sort: Optional[List[str]], order: Optional[List[str]]) -> List[SortBy]:
    """Pair each sort key with the order at the same position, ascending by default."""
    sort = list(sort or [])
    order = list(order or [])
    if not sort and order:
        sort = ["title"]

    sort_by = []
    for index, key in enumerate(sort):
        direction = order[index] if index < len(order) else "asc"
        if direction in ("1", "-1"):
            direction = int(direction)
        sort_by.append(SortBy(key=key, direction=direction))
    return sort_by


def activity_filter(
    page: Annotated[Optional[int], Query(ge=1)] = None,
    page_size: Annotated[Optional[int], Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    query: Annotated[Optional[str], Query()] = None,
    category: Annotated[Optional[List[str]], Query()] = None,
    duration: Annotated[Optional[int], Query(ge=0)] = None,
    max_duration: Annotated[Optional[int], Query(ge=0)] = None,
    difficulty: Annotated[Optional[str], Query()] = None,
    max_difficulty: Annotated[Optional[str], Query()] = None,
    sort: Annotated[Optional[List[SortKey]], Query()] = None,
    order: Annotated[Optional[List[OrderParam]], Query()] = None,
) -> ActivityQuery:
    """
    Build an ActivityQuery from the query string.

    `duration` and `difficulty` are lower bounds, `max_duration` and
    `max_difficulty` upper bounds. Difficulties may be labels (`easy`) or 1-5.
    `sort` and `order` may repeat; the n-th order applies to the n-th key.
    """
    return ActivityQuery(
        page=page,
        page_size=page_size,
        search_term=query.strip() if query else None,
        category=category or None,
        duration=_range(duration, max_duration),
        difficulty=_range(_difficulty(difficulty), _difficulty(max_difficulty)),
        sort_by=_sort_by(sort, order) or None,
    )


ActivityFilter = Annotated[ActivityQuery, Depends(activity_filter)]
