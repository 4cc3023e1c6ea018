"""
Unit tests for continuation-based pagination.
"""

import pytest

from azure_utilization.core.pagination import Page, drain, iter_items, iter_pages


def make_feed(pages):
    """Build a first page and a fetch_next over a list of item lists.

    Continuations are the index of the next page; the last page has none.
    """
    def page_at(index):
        continuation = index + 1 if index + 1 < len(pages) else None
        return Page(items=pages[index], continuation=continuation)

    calls = []

    def fetch_next(continuation):
        calls.append(continuation)
        return page_at(continuation)

    return page_at(0), fetch_next, calls


class TestPagination:
    """Test page iteration and flattening."""

    @pytest.mark.parametrize("pages", [
        [[]],
        [[1, 2, 3]],
        [[1, 2], [3, 4], [5]],
        [[1], [], [2, 3]],
        [[i * 10 + j for j in range(10)] for i in range(7)],
    ])
    def test_drain_concatenates_in_order(self, pages):
        """Verify length is the sum of page sizes, in page then intra-page order."""
        first, fetch_next, _ = make_feed(pages)

        items = drain(iter_pages(first, fetch_next))

        assert len(items) == sum(len(p) for p in pages)
        assert items == [item for page in pages for item in page]

    def test_single_page_never_fetches(self):
        """Verify no request is made when the first page has no continuation."""
        first, fetch_next, calls = make_feed([[1, 2]])

        assert drain(iter_pages(first, fetch_next)) == [1, 2]
        assert calls == []

    def test_pages_fetched_lazily(self):
        """Verify the next page is requested only when needed."""
        first, fetch_next, calls = make_feed([[1, 2], [3], [4]])
        items = iter_items(iter_pages(first, fetch_next))

        assert next(items) == 1
        assert next(items) == 2
        assert calls == []
        assert next(items) == 3
        assert calls == [1]
        assert list(items) == [4]
        assert calls == [1, 2]

    def test_fetch_error_propagates(self):
        """Verify a failing page fetch surfaces to the consumer."""
        def fetch_next(continuation):
            raise RuntimeError("boom")

        pages = iter_pages(Page(items=[1], continuation="next"), fetch_next)

        with pytest.raises(RuntimeError, match="boom"):
            drain(pages)

    def test_has_next(self):
        assert Page(items=[], continuation={"uri": "/next"}).has_next
        assert not Page(items=[]).has_next
