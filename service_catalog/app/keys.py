"""
Cache key derivation for catalog queries.

List keys and detail keys live under separate prefixes of the same
namespace so that a write can sweep every list page at once while
removing a single detail entry by exact key.
"""

import re
from typing import Any

from shared.errors import InvalidQueryError
from .models import ListQuery

DEFAULT_NAMESPACE = "catalog:vehicles"


class CacheKeyDeriver:
    """Deterministic, side-effect free mapping from queries to cache keys."""

    LIST_SEGMENT = "list"
    DETAIL_SEGMENT = "detail"

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace.rstrip(":")

    def list_prefix(self) -> str:
        return f"{self.namespace}:{self.LIST_SEGMENT}:"

    def detail_prefix(self) -> str:
        return f"{self.namespace}:{self.DETAIL_SEGMENT}:"

    def derive_list_key(self, page: Any, limit: Any, search_term: str = "") -> str:
        """Key for one list page; the search term is case-sensitive in the key."""
        query = ListQuery.from_params(page, limit, search_term)
        return self.list_key(query)

    def list_key(self, query: ListQuery) -> str:
        # search term goes last: it is the only free-form segment
        return f"{self.list_prefix()}page={query.page}:limit={query.limit}:search={query.search_term}"

    def derive_detail_key(self, record_id: Any) -> str:
        return f"{self.detail_prefix()}{normalize_record_id(record_id)}"


_FORBIDDEN_ID_CHARS = re.compile(r"[\s*?\[\]:]")


def normalize_record_id(record_id: Any) -> str:
    """Validate a vehicle identifier and return its canonical string form.

    Identifiers are opaque strings; they only need to be non-empty and free
    of whitespace, the key separator and glob metacharacters so that detail
    keys can never collide with a prefix sweep pattern.
    """
    if record_id is None or isinstance(record_id, bool):
        raise InvalidQueryError("Vehicle identifier is required", details={"id": record_id})

    normalized = str(record_id).strip()
    if not normalized or _FORBIDDEN_ID_CHARS.search(normalized):
        raise InvalidQueryError("Malformed vehicle identifier", details={"id": str(record_id)})
    return normalized
