"""Read-only guard for raw SQL queries against chat.db"""

import re
from typing import Optional

from imessage_tools.exceptions import QueryValidationError

FORBIDDEN_KEYWORDS = [
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "CREATE",
    "ALTER",
    "TRUNCATE",
    "REPLACE",
    "ATTACH",
    "DETACH",
]


def validate_read_only_query(query: str) -> str:
    """
    Check that a query only reads data.

    The query must start with SELECT or WITH and must not contain any
    write keyword as a whole word. Identifiers such as ``created_date``
    are allowed.

    Returns:
        The trimmed query

    Raises:
        QueryValidationError: If the query is empty or may write
    """
    query = (query or "").strip()
    if not query:
        raise QueryValidationError("Query is empty.")

    query_upper = query.upper()
    if not (query_upper.startswith("SELECT") or query_upper.startswith("WITH")):
        raise QueryValidationError(
            "Only SELECT queries are allowed. This is a read-only database."
        )

    for keyword in FORBIDDEN_KEYWORDS:
        if re.search(rf"\b{keyword}\b", query_upper):
            raise QueryValidationError(
                f"Query contains forbidden keyword: {keyword}. "
                "Only SELECT queries are allowed."
            )

    return query


def apply_row_limit(
    query: str,
    limit: Optional[int] = None,
    default_limit: int = 100,
    max_limit: int = 1000,
) -> str:
    """
    Wrap a query so it returns at most min(limit or default_limit, max_limit) rows.

    The cap applies whatever the query contains, including its own LIMIT.
    A trailing -- comment in the query must not reach the closing parenthesis.
    """
    effective_limit = min(limit or default_limit, max_limit)
    body = query.strip().rstrip(";").rstrip()
    return f"SELECT * FROM (\n{body}\n) LIMIT {effective_limit}"
