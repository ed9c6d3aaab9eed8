"""Unit tests for pneuma.pagination (lazy paged enumeration)."""

from __future__ import annotations

import math
from typing import Optional

import pytest

from pactum.errors import PaginationLoopError
from pactum.pneuma.pagination import Page, PaginatedEnumerator

from fakes import page_of


class CountingSource:
    """Serves ``total`` integers in pages of ``page_size`` and counts fetches."""

    def __init__(self, total: int, page_size: int) -> None:
        self.items = list(range(total))
        self.page_size = page_size
        self.tokens: list[Optional[str]] = []

    def __call__(self, token: Optional[str]) -> Page:
        self.tokens.append(token)
        return page_of(self.items, token, self.page_size)


def enumerate_source(source: CountingSource) -> PaginatedEnumerator[int]:
    return PaginatedEnumerator(source, lambda raw: raw * 10)


class TestPage:
    def test_from_response(self) -> None:
        page = Page.from_response({"data": [1, 2], "has_more": True, "next_page": "abc"})
        assert page.items == [1, 2]
        assert page.next_token == "abc"

    def test_token_ignored_without_has_more(self) -> None:
        page = Page.from_response({"data": [1], "has_more": False, "next_page": "abc"})
        assert page.next_token is None


class TestPaginatedEnumerator:
    def test_no_fetch_until_iterated(self) -> None:
        source = CountingSource(5, 2)
        enumerate_source(source)
        assert source.tokens == []

    @pytest.mark.parametrize("total,page_size", [(5, 2), (6, 3), (1, 10), (10, 1)])
    def test_fetch_count_and_length(self, total: int, page_size: int) -> None:
        source = CountingSource(total, page_size)
        items = enumerate_source(source).to_list()
        assert items == [i * 10 for i in range(total)]
        assert len(source.tokens) == math.ceil(total / page_size)

    def test_take_within_first_page_fetches_once(self) -> None:
        source = CountingSource(10, 4)
        assert enumerate_source(source).take(3) == [0, 10, 20]
        assert source.tokens == [None]

    def test_take_full_page_does_not_fetch_next(self) -> None:
        source = CountingSource(10, 4)
        enumerate_source(source).take(4)
        assert len(source.tokens) == 1

    def test_first(self) -> None:
        source = CountingSource(3, 2)
        assert enumerate_source(source).first() == 0
        assert len(source.tokens) == 1
        assert enumerate_source(CountingSource(0, 2)).first() is None

    def test_each_traversal_has_its_own_token(self) -> None:
        source = CountingSource(4, 2)
        enumerator = enumerate_source(source)
        first = iter(enumerator)
        second = iter(enumerator)
        assert [next(first), next(first), next(first)] == [0, 10, 20]
        assert next(second) == 0
        assert source.tokens == [None, "2", None]

    def test_count_traverses_every_page(self) -> None:
        source = CountingSource(7, 3)
        assert enumerate_source(source).count() == 7
        assert source.tokens == [None, "3", "6"]

    def test_stops_on_empty_page(self) -> None:
        calls = []

        def fetch(token: Optional[str]) -> Page:
            calls.append(token)
            return Page(items=[], next_token="more")

        assert PaginatedEnumerator(fetch, lambda raw: raw).to_list() == []
        assert calls == [None]

    def test_repeated_token_raises(self) -> None:
        def fetch(token: Optional[str]) -> Page:
            return Page(items=["x"], next_token="same")

        with pytest.raises(PaginationLoopError):
            PaginatedEnumerator(fetch, lambda raw: raw).to_list()
