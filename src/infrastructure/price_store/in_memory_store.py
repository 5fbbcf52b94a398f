"""
Infrastructure adapter: in-process list of PriceRecord -> IPriceStore, IMetalCatalog.

Used for local runs without Supabase credentials and as the store fake in tests.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from src.domain.entities.metal_price import DaySnapshot, PriceRecord
from src.domain.ports.metal_catalog_port import IMetalCatalog
from src.domain.ports.price_store_port import IPriceStore


class InMemoryPriceStore(IPriceStore, IMetalCatalog):
    def __init__(self, records: Iterable[PriceRecord] = ()) -> None:
        self._records: dict[tuple[str, Optional[str], date], PriceRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: PriceRecord) -> None:
        """Insert or replace the record keyed by (metal, carat, date)."""
        self._records[(record.metal, record.carat, record.date)] = record

    async def get_by_date(self, day: date, metals: Iterable[str]) -> list[PriceRecord]:
        codes = set(metals)
        return [r for r in self._sorted() if r.date == day and r.metal in codes]

    async def get_by_range(
        self, start: date, end: date, metals: Iterable[str]
    ) -> list[DaySnapshot]:
        codes = set(metals)
        by_date: dict[date, list[PriceRecord]] = defaultdict(list)
        for record in self._sorted():
            if start <= record.date <= end and record.metal in codes:
                by_date[record.date].append(record)
        return [
            DaySnapshot(date=day, records=tuple(records))
            for day, records in sorted(by_date.items())
        ]

    async def get_latest_date(self) -> Optional[date]:
        return max((r.date for r in self._records.values()), default=None)

    async def get_oldest_and_newest_dates(self) -> tuple[Optional[date], Optional[date]]:
        dates = [r.date for r in self._records.values()]
        if not dates:
            return None, None
        return min(dates), max(dates)

    async def list_metals(self) -> list[str]:
        return sorted({r.metal for r in self._records.values()})

    def _sorted(self) -> list[PriceRecord]:
        return sorted(
            self._records.values(),
            key=lambda r: (r.date, r.metal, -(int(r.carat) if r.carat else 0)),
        )
