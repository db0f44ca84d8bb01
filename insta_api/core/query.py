# insta_api/core/query.py
"""
Typed list/query options for collection listings.

Request arguments never reach Firestore as free-form field/value pairs:
`page`, `limit`, `_sort` and `_order` are validated by `ListQuerySchema`,
and any other argument becomes an `EQUALS` filter only when the resource
allows filtering on that field.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from firebase_admin import firestore
from marshmallow import Schema, fields, validate, EXCLUDE

# Firestore rejects 'in' / 'array-contains-any' with more values than this.
FIRESTORE_IN_LIMIT = 30


class FilterKind(Enum):
    """Supported filter operators and their Firestore spelling."""
    EQUALS = "=="
    IN = "in"
    ARRAY_CONTAINS = "array_contains"
    ARRAY_CONTAINS_ANY = "array_contains_any"


@dataclass(frozen=True)
class QueryFilter:
    kind: FilterKind
    field: str
    value: Any

    def apply(self, query):
        return query.where(self.field, self.kind.value, self.value)


@dataclass
class ListOptions:
    page: int = 1
    limit: int = 10
    sort: str = "created_at"
    order: str = "asc"
    filters: List[QueryFilter] = field(default_factory=list)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def direction(self) -> str:
        return firestore.Query.DESCENDING if self.order == "desc" else firestore.Query.ASCENDING


class ListQuerySchema(Schema):
    """Validates the pagination arguments shared by every listing endpoint."""
    class Meta:
        unknown = EXCLUDE

    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    limit = fields.Int(load_default=10, validate=validate.Range(min=1, max=100))
    sort = fields.Str(data_key="_sort", load_default=None)
    order = fields.Str(data_key="_order", load_default=None, validate=validate.OneOf(["asc", "desc"]))


def parse_list_options(args, allowed_filters: Sequence[str] = (), sortable: Sequence[str] = ("created_at",),
                       default_sort: str = "created_at", default_order: str = "asc",
                       default_limit: int = 10) -> ListOptions:
    """
    Turns request arguments into a `ListOptions`.

    :param args: request.args (or any mapping of strings)
    :param allowed_filters: fields that may be filtered by equality through extra arguments
    :param sortable: fields accepted by `_sort`; anything else falls back to `default_sort`
    """
    raw = {k: v for k, v in args.items()}
    if 'limit' not in raw:
        raw['limit'] = default_limit
    loaded = ListQuerySchema().load(raw)

    sort = loaded.get('sort') or default_sort
    if sort not in sortable:
        sort = default_sort

    filters = []
    for name in allowed_filters:
        if name in args:
            filters.append(QueryFilter(FilterKind.EQUALS, name, _coerce(args.get(name))))

    return ListOptions(
        page=loaded['page'],
        limit=loaded['limit'],
        sort=sort,
        order=loaded.get('order') or default_order,
        filters=filters,
    )


def _coerce(value: str) -> Any:
    # Query strings only carry text; booleans are the one typed filter we need.
    if value in ("true", "false"):
        return value == "true"
    return value


def apply_filters(query, filters: Iterable[QueryFilter]):
    for query_filter in filters:
        query = query_filter.apply(query)
    return query


def paginate(collection_ref, options: ListOptions, extra_filters: Iterable[QueryFilter] = ()) -> Tuple[List[dict], int]:
    """
    Runs a filtered, sorted, paginated Firestore query.

    The total is counted on the filtered query before ordering and slicing.
    :return: (documents of the requested page, total number of matching documents)
    """
    filtered = apply_filters(collection_ref, list(extra_filters) + list(options.filters))
    total = count(filtered)

    page_query = filtered.order_by(options.sort, direction=options.direction)
    if options.skip:
        page_query = page_query.offset(options.skip)
    docs = page_query.limit(options.limit).stream()
    return [doc.to_dict() for doc in docs], total


def paginate_list(items: Sequence[Any], options: ListOptions) -> Tuple[List[Any], int]:
    """Same contract as `paginate` for results that were already gathered in memory."""
    return list(items[options.skip:options.skip + options.limit]), len(items)


def count(query) -> int:
    """Server-side aggregation count; the matching documents are not fetched."""
    return query.count().get()[0][0].value


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def in_chunks(values: Sequence[Any], size: int = FIRESTORE_IN_LIMIT) -> Iterator[List[Any]]:
    """Splits values for 'in' / 'array_contains_any' filters."""
    values = list(values)
    for i in range(0, len(values), size):
        yield values[i:i + size]


def stream_where_in(collection_ref, field_name: str, values: Sequence[Any],
                    kind: FilterKind = FilterKind.IN) -> List[dict]:
    """Streams every document whose field matches any of `values`, in chunks Firestore accepts."""
    results = {}
    for chunk in in_chunks(values):
        for doc in collection_ref.where(field_name, kind.value, chunk).stream():
            results[doc.id] = doc.to_dict()
    return list(results.values())


def sort_documents(docs: List[dict], key: str, descending: bool = False) -> List[dict]:
    return sorted(docs, key=lambda d: (d.get(key) is None, d.get(key)), reverse=descending)


def find_document(collection_ref, id_field: str, doc_id: str) -> Optional[dict]:
    """
    Looks a document up by the id field every entity stores.
    A missing id gives None; the collection is left untouched.
    """
    if not doc_id:
        return None
    docs = list(collection_ref.where(id_field, FilterKind.EQUALS.value, doc_id).limit(1).stream())
    return docs[0].to_dict() if docs else None
