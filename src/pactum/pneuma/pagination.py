"""
Lazy enumeration over paged platform collections.

List endpoints return ``{"data": [...], "has_more": bool, "next_page": str}``.
A :class:`PaginatedEnumerator` walks the token chain on demand: nothing is
fetched until iteration starts, and stopping early fetches no further pages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from ..errors import PaginationLoopError

T = TypeVar("T")


@dataclass(frozen=True)
class Page:
    items: list[Any] = field(default_factory=list)
    next_token: Optional[str] = None

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "Page":
        token = payload.get("next_page") if payload.get("has_more") else None
        return cls(items=list(payload.get("data") or []), next_token=token or None)


class PaginatedEnumerator(Generic[T]):
    """
    Forward-only sequence over a remote collection.

    Args:
        fetch: ``fetch(token) -> Page``; ``token`` is None for the first page
        build: Converts one raw item into the exposed type

    Every ``iter()`` starts a fresh traversal with its own token, so separate
    traversals never share cursor state.
    """

    def __init__(self, fetch: Callable[[Optional[str]], Page], build: Callable[[Any], T]) -> None:
        self._fetch = fetch
        self._build = build

    def __iter__(self) -> Iterator[T]:
        return self._traverse()

    def _traverse(self) -> Iterator[T]:
        token: Optional[str] = None
        seen: set[str] = set()
        while True:
            page = self._fetch(token)
            for raw in page.items:
                yield self._build(raw)
            if not page.items or not page.next_token:
                return
            if page.next_token in seen:
                raise PaginationLoopError(page.next_token)
            seen.add(page.next_token)
            token = page.next_token

    def take(self, n: int) -> list[T]:
        return list(islice(self, n))

    def first(self) -> Optional[T]:
        return next(iter(self), None)

    def to_list(self) -> list[T]:
        return list(self)

    def count(self) -> int:
        """Number of items. Fetches every page of the collection."""
        return sum(1 for _ in self)
