"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like endpoint names, query fragments,
image ids and file paths, keeping signatures self-describing.
"""

from typing import Any, Callable, Dict, NewType, TypeVar

# === Metadata Query Context ===

Endpoint = NewType("Endpoint", str)          # API endpoint segment, e.g. 'games'
QueryFields = NewType("QueryFields", str)    # e.g. 'fields name,slug'
QueryFilter = NewType("QueryFilter", str)    # e.g. 'where id = 1942'
QueryBody = NewType("QueryBody", str)        # fields + ' ' + filter + ';'

# A raw record as returned by the backend (decoded JSON object)
RawRecord = Dict[str, Any]

T = TypeVar("T")
# Maps a raw record to a typed result (dataclass constructor, pydantic model, etc.)
ResultMapper = Callable[[RawRecord], T]

# === Image Cache Context ===

ImageId = NewType("ImageId", str)            # Upstream image hash, e.g. 'co1wyy'
FilePath = NewType("FilePath", str)          # Path to a file on disk


def build_query_body(fields: str, query_filter: str) -> QueryBody:
    """Joins caller-supplied fields and filter into one backend expression.

    The fragments are not validated; callers are responsible for their syntax.
    """
    return QueryBody(f"{fields} {query_filter};")
