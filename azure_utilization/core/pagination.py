"""
Pull-based pagination over continuation-linked result pages.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results and the handle for the next one, if any."""
    items: Sequence[T]
    continuation: Optional[object] = None

    @property
    def has_next(self) -> bool:
        return self.continuation is not None


def iter_pages(first: Page[T], fetch_next: Callable[[object], Page[T]]) -> Iterator[Page[T]]:
    """Yield ``first`` and every following page until no continuation remains.

    Pages are fetched lazily, one request per ``next()`` past the first.
    """
    page = first
    while True:
        yield page
        if not page.has_next:
            return
        page = fetch_next(page.continuation)


def iter_items(pages: Iterable[Page[T]]) -> Iterator[T]:
    """Flatten pages in page order, then intra-page order."""
    for page in pages:
        yield from page.items


def drain(pages: Iterable[Page[T]]) -> List[T]:
    """Consume every page into a single list."""
    return list(iter_items(pages))
