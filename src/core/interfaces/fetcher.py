"""Page-fetching contract used by the traversal engine.

Why Protocol:
- A structural contract (duck typing) without rigid inheritance.
- The traversal can be driven by the HTTP client or by a plain async function
  in tests, without coupling the core to a concrete implementation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import NormalisedCollection


@runtime_checkable
class OffsetPageFetcher(Protocol):
    """Minimal contract for fetching one offset-addressed page.

    Design rules:
    - Asynchronous because it typically performs I/O (HTTP).
    - Returns the page already normalised, carrying its pagination metadata.
    """

    async def __call__(self, start: int, limit: int) -> NormalisedCollection:
        """Fetch the items at `[start, start + limit)`."""

        ...
