"""Abstract base class for online search clients."""

from abc import ABC, abstractmethod

from src.core.cancellation import CancellationSignal
from src.core.schemas import Vacancy


class SearchClient(ABC):
    """Base class that every online job-search client must implement."""

    @property
    @abstractmethod
    def platform_id(self) -> str:
        """Unique identifier for this platform (e.g. 'jooble')."""

    @abstractmethod
    async def search(self, term: str, signal: CancellationSignal) -> list[Vacancy]:
        """Run one search and return mapped vacancies in upstream order.

        Raises SearchCancelled once the signal is observed closed, and a
        SearchError subclass for any other failure. Never retries.
        """
