"""
Port (interface) for the metal price store.
Infrastructure adapters (e.g. SupabasePriceStore) must implement this interface.

All methods are coroutines: callers must not assume synchronous completion.
Adapters raise StoreUnavailableError when the backing store cannot be read.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional

from src.domain.entities.metal_price import DaySnapshot, PriceRecord


class IPriceStore(ABC):
    @abstractmethod
    async def get_by_date(self, day: date, metals: Iterable[str]) -> list[PriceRecord]:
        """Return every record for *day* whose metal is in *metals*."""
        ...

    @abstractmethod
    async def get_by_range(
        self, start: date, end: date, metals: Iterable[str]
    ) -> list[DaySnapshot]:
        """Return records in [start, end] grouped by date, ascending.

        Dates without any record for *metals* are omitted.
        """
        ...

    @abstractmethod
    async def get_latest_date(self) -> Optional[date]: ...

    @abstractmethod
    async def get_oldest_and_newest_dates(
        self,
    ) -> tuple[Optional[date], Optional[date]]: ...
