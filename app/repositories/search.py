import re

from sqlalchemy import or_
from sqlalchemy.orm import InstrumentedAttribute, Query

NON_DIGITS = re.compile(r"\D")


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_text_search(
    query: Query,
    text: str | None,
    columns: list[InstrumentedAttribute],
    phone_columns: list[InstrumentedAttribute] | None = None,
) -> Query:
    """
    Case-insensitive substring match over several columns (OR).

    Phone columns store digits only, so they are matched against the
    digits of the search text and skipped when it has none.
    """
    if not text or not text.strip():
        return query

    text = text.strip()
    conditions = [column.ilike(_like_pattern(text), escape="\\") for column in columns]
    digits = NON_DIGITS.sub("", text)
    if digits:
        conditions.extend(
            column.ilike(_like_pattern(digits), escape="\\") for column in phone_columns or []
        )
    return query.filter(or_(*conditions))


def apply_in_filters(query: Query, filters: dict[InstrumentedAttribute, list | None]) -> Query:
    """Restrict each column to the given values; empty lists are ignored"""
    for column, values in filters.items():
        if values:
            query = query.filter(column.in_(values))
    return query
