"""Abstract base class for fare sources."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, ClassVar, Self

if TYPE_CHECKING:
    from types import TracebackType

    from fare_scout_core.schemas import CrawlResult, CrawlTask


class BaseCrawler(abc.ABC):
    """A fare source that answers one search per :class:`CrawlTask`.

    Usable as an async context manager; leaving the block calls ``close``.
    """

    source: ClassVar[str]

    @abc.abstractmethod
    async def crawl(self, task: CrawlTask) -> CrawlResult:
        """Run one search and return the extracted itineraries."""

    @abc.abstractmethod
    async def health_check(self) -> bool:
        """Return True if the source is reachable."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release any held resources."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
