# insta_api/core/test_query.py
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from marshmallow import ValidationError
from mockfirestore import MockFirestore

from insta_api.core.query import (
    FilterKind, ListOptions, QueryFilter, count, find_document, in_chunks, paginate, paginate_list,
    parse_list_options, stream_where_in, total_pages,
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def items_ref():
    db = MockFirestore()
    ref = db.collection('items')
    for i in range(1, 26):
        ref.document(f'item-{i:02d}').set({
            'item_id': f'item-{i:02d}',
            'position': i,
            'owner': 'odd' if i % 2 else 'even',
            'created_at': BASE_TIME + timedelta(minutes=i),
        })
    return ref


def test_parse_list_options_defaults():
    options = parse_list_options({})
    assert options.page == 1
    assert options.limit == 10
    assert options.sort == 'created_at'
    assert options.order == 'asc'
    assert options.filters == []
    assert options.skip == 0


def test_parse_list_options_reads_sort_and_order():
    options = parse_list_options({'page': '3', 'limit': '5', '_sort': 'username', '_order': 'desc'},
                                 sortable=('created_at', 'username'))
    assert (options.page, options.limit, options.sort, options.order) == (3, 5, 'username', 'desc')
    assert options.skip == 10


def test_parse_list_options_unknown_sort_falls_back():
    options = parse_list_options({'_sort': 'password'})
    assert options.sort == 'created_at'


@pytest.mark.parametrize('args', [{'page': '0'}, {'limit': '0'}, {'limit': '101'}, {'_order': 'sideways'}])
def test_parse_list_options_rejects_invalid_values(args):
    with pytest.raises(ValidationError):
        parse_list_options(args)


def test_only_allowed_fields_become_filters():
    options = parse_list_options({'tick': 'true', 'password': 'x', 'username': 'bob'},
                                 allowed_filters=('tick', 'username'))
    assert QueryFilter(FilterKind.EQUALS, 'tick', True) in options.filters
    assert QueryFilter(FilterKind.EQUALS, 'username', 'bob') in options.filters
    assert all(f.field != 'password' for f in options.filters)


def test_paginate_second_page(items_ref):
    options = ListOptions(page=2, limit=10)
    items, total = paginate(items_ref, options)

    assert [item['position'] for item in items] == list(range(11, 21))
    assert total == 25
    assert total_pages(total, options.limit) == 3


def test_paginate_with_filter_and_descending_order(items_ref):
    options = ListOptions(page=1, limit=3, order='desc',
                          filters=[QueryFilter(FilterKind.EQUALS, 'owner', 'even')])
    items, total = paginate(items_ref, options)

    assert total == 12
    assert [item['position'] for item in items] == [24, 22, 20]


def test_paginate_list_matches_paginate_contract():
    page, total = paginate_list(list(range(1, 26)), ListOptions(page=3, limit=10))
    assert page == [21, 22, 23, 24, 25]
    assert total == 25


def test_total_pages():
    assert total_pages(0, 10) == 0
    assert total_pages(10, 10) == 1
    assert total_pages(11, 10) == 2


def test_in_chunks():
    chunks = list(in_chunks(range(65)))
    assert [len(c) for c in chunks] == [30, 30, 5]


def test_stream_where_in_handles_more_values_than_one_query_accepts(items_ref):
    wanted = [f'item-{i:02d}' for i in range(1, 26)] + [f'missing-{i}' for i in range(20)]
    docs = stream_where_in(items_ref, 'item_id', wanted)
    assert len(docs) == 25


def test_find_document_does_not_create_missing_documents(items_ref):
    assert find_document(items_ref, 'item_id', 'nope') is None
    assert find_document(items_ref, 'item_id', 'item-07')['position'] == 7
    assert len(list(items_ref.stream())) == 25


def test_count_uses_the_aggregation_query():
    query = MagicMock()
    query.count.return_value.get.return_value = [[SimpleNamespace(value=7)]]

    assert count(query) == 7
    query.stream.assert_not_called()
    query.get.assert_not_called()
