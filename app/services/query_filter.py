"""Compile activity filter requests into a single paginated read.

A request (category, duration and difficulty bounds, keyword search, sort
keys, page window) becomes one statement:

    WITH filtered AS (SELECT ... WHERE <filters>)
    SELECT counted.total, page_rows.*
    FROM (SELECT count(*) AS total FROM filtered) AS counted
    LEFT OUTER JOIN (
        SELECT filtered.*, row_number() OVER (ORDER BY <sort>) AS position
        FROM filtered ORDER BY <sort> LIMIT :size OFFSET :skip
    ) AS page_rows ON true
    ORDER BY page_rows.position

The total and the page are read from the same snapshot of the filtered set,
and the statement always yields at least one row carrying the total.
"""

import operator
import re
from dataclasses import dataclass
from functools import reduce
from typing import Any, Iterable, List, Optional, Tuple, Union

from sqlalchemy import and_, case, func, literal, or_, select, true
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement, Select

from app.schemas.activity import ActivityQuery, NumberOrRange, NumberRange

# Relevance weight of a phrase found in each field, most influential first
SEARCH_WEIGHTS = {
    "title": 13,
    "category": 8,
    "description": 5,
    "content": 3,
}
ACTIVITY_FIELDS = ("title", "category", "description", "duration", "difficulty", "content")
DEFAULT_PAGE_SIZE = 20

# Split by whitespace but keep "quoted phrases" together
_SEARCH_TOKEN = re.compile(r'"([^"]*)"|(\S+)')


@dataclass
class CompiledQuery:
    statement: Select
    page: int
    page_size: int


def split_search_terms(text: Optional[str]) -> List[str]:
    """
    Tokenize a search string.

    `Hello world` -> ["Hello", "world"]
    `"Hello world" cheese"` -> ["Hello world", "cheese"]
    """
    if not text:
        return []
    terms = []
    for quoted, bare in _SEARCH_TOKEN.findall(text):
        term = (quoted or bare).strip('"').strip()
        if term:
            terms.append(term)
    return terms


def number_or_range_filter(column: Any, value: NumberOrRange) -> ColumnElement:
    """
    `5` -> column = 5
    `{min: 1}` -> column >= 1
    `{max: 5}` -> column <= 5
    `{min: 1, max: 5}` -> column >= 1 AND column <= 5
    """
    if isinstance(value, NumberRange):
        bounds = []
        if value.min is not None:
            bounds.append(column >= value.min)
        if value.max is not None:
            bounds.append(column <= value.max)
        return and_(*bounds)
    return column == value


def category_filter(column: Any, value: Union[str, List[str]]) -> ColumnElement:
    """Case-insensitive match against one category or any of several."""
    if isinstance(value, str):
        return func.lower(column) == value.lower()
    return func.lower(column).in_([category.lower() for category in value])


def _phrase_in(source: Any, field: str, term: str) -> ColumnElement:
    return getattr(source, field).icontains(term, autoescape=True)


def text_search_filter(source: Any, terms: List[str]) -> ColumnElement:
    """Every term must appear as a phrase in at least one searchable field."""
    return and_(
        *[
            or_(*[_phrase_in(source, field, term) for field in SEARCH_WEIGHTS])
            for term in terms
        ]
    )


def text_search_score(source: Any, terms: List[str]) -> ColumnElement:
    """Sum of field weights over every (term, field) pair that matches."""
    parts = [
        case((_phrase_in(source, field, term), weight), else_=0)
        for term in terms
        for field, weight in SEARCH_WEIGHTS.items()
    ]
    return reduce(operator.add, parts)


def _sort_clauses(rows: Any, query: ActivityQuery, searching: bool) -> list:
    clauses = []
    seen = set()
    for sort in query.sort_keys:
        if sort.key in seen:
            continue
        seen.add(sort.key)
        column = rows.c[sort.key]
        clauses.append(column.asc() if sort.ascending else column.desc())

    if searching:
        # Relevance breaks ties after explicit keys, or leads when there are none
        clauses.append(rows.c.score.desc())
    elif not clauses:
        clauses.append(rows.c.title.asc())

    # Insertion order, then id, keeps identical sort keys deterministic
    clauses.extend([rows.c.created.asc(), rows.c.id.asc()])
    return clauses


def paginate(rows: Any, order_by: list, page: int, page_size: int) -> Select:
    """Count every row of ``rows`` and slice one ordered page in one statement."""
    counted = select(func.count().label("total")).select_from(rows).subquery("counted")
    page_rows = (
        select(rows, func.row_number().over(order_by=order_by).label("position"))
        .order_by(*order_by)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .subquery("page_rows")
    )
    return (
        select(counted.c.total, page_rows)
        .select_from(counted.outerjoin(page_rows, true()))
        .order_by(page_rows.c.position)
    )


def page_window(page: Optional[int], page_size: Optional[int], default_page_size: int) -> Tuple[int, int]:
    """Apply defaults and floor both values at 1."""
    page = max(page if page is not None else 1, 1)
    page_size = max(page_size if page_size is not None else default_page_size, 1)
    return page, page_size


def compile_activity_query(
    source: Any,
    query: Optional[ActivityQuery] = None,
    scope: Iterable[ColumnElement] = (),
    id_column: Any = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> CompiledQuery:
    """
    Compile ``query`` against any mapped class carrying the activity fields.

    Args:
        source: Activity or UserActivity
        query: filter/search/sort/page request, everything optional
        scope: extra predicates always applied, e.g. the owning user
        id_column: column reported as ``id`` (defaults to ``source.id``)
        default_page_size: page size when the request has none
    """
    query = query or ActivityQuery()
    filters = list(scope)

    if query.difficulty is not None:
        filters.append(number_or_range_filter(source.difficulty, query.difficulty))
    if query.duration is not None:
        filters.append(number_or_range_filter(source.duration, query.duration))
    if query.category:
        filters.append(category_filter(source.category, query.category))

    terms = split_search_terms(query.search_term)
    score = literal(0)
    if terms:
        filters.append(text_search_filter(source, terms))
        score = text_search_score(source, terms)

    id_column = source.id if id_column is None else id_column
    rows = (
        select(
            id_column.label("id"),
            source.created.label("created"),
            *[getattr(source, field).label(field) for field in ACTIVITY_FIELDS],
            score.label("score"),
        )
        .where(*filters)
        .cte("filtered")
    )

    page, page_size = page_window(query.page, query.page_size, default_page_size)
    statement = paginate(rows, _sort_clauses(rows, query, searching=bool(terms)), page, page_size)
    return CompiledQuery(statement=statement, page=page, page_size=page_size)


async def execute_paginated(db: AsyncSession, statement: Select) -> Tuple[int, List[RowMapping]]:
    """Run a statement built by ``paginate``; returns (total, page rows)."""
    result = await db.execute(statement)
    rows = result.mappings().all()
    total = rows[0]["total"] if rows else 0
    return total, [row for row in rows if row["position"] is not None]
