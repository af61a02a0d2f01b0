"""Unit tests for TableFilter."""

from dbquery.schema.filters import TableFilter


def test_empty_filter_matches_everything():
    table_filter = TableFilter()

    assert not table_filter
    assert table_filter.matches("users")
    assert table_filter.matches("analytics.events")


def test_blank_tokens_are_ignored():
    table_filter = TableFilter(["", "  ", "users"])

    assert table_filter.tokens == frozenset({"users"})


def test_case_insensitive_match():
    table_filter = TableFilter([" Users "])

    assert table_filter.matches("USERS")
    assert not table_filter.matches("orders")


def test_qualified_name_matches_last_segment():
    table_filter = TableFilter(["users"])

    assert table_filter.matches("public.users")
    assert not table_filter.matches("public.users_archive")


def test_qualified_token_matches_exact_name_only():
    table_filter = TableFilter(["sales.orders"])

    assert table_filter.matches("sales.orders")
    assert not table_filter.matches("public.orders")
    assert not table_filter.matches("orders")
