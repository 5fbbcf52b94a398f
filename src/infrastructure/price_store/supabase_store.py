"""
Infrastructure adapter: Supabase (PostgREST) metal_prices table -> IPriceStore, IMetalCatalog.

All supabase / postgrest details are confined here. The supabase client is
synchronous, so every query runs in a worker thread via asyncio.to_thread.
Library errors are logged and re-raised as StoreUnavailableError without
internal detail.

Table columns read: metal_name, carat, date, price_1g, price_8g, price_per_kg.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from src.domain.entities.metal_price import DaySnapshot, PriceRecord
from src.domain.errors import StoreUnavailableError
from src.domain.ports.metal_catalog_port import IMetalCatalog
from src.domain.ports.price_store_port import IPriceStore

logger = logging.getLogger(__name__)

PRICE_COLUMNS = "metal_name, carat, date, price_1g, price_8g, price_per_kg"


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def row_to_record(row: dict) -> Optional[PriceRecord]:
    """Map one metal_prices row to a PriceRecord; rows without a gram price are skipped."""
    price = _decimal(row.get("price_1g"))
    if price is None:
        return None
    return PriceRecord(
        date=date.fromisoformat(str(row["date"])[:10]),
        metal=row["metal_name"],
        carat=str(row["carat"]) if row.get("carat") else None,
        price_per_gram=price,
        price_per_eight_grams=_decimal(row.get("price_8g")),
        price_per_kilogram=_decimal(row.get("price_per_kg")),
    )


class SupabasePriceStore(IPriceStore, IMetalCatalog):
    """Reads the metal_prices table written by the ingestion job."""

    PAGE_SIZE = 1000

    def __init__(self, client: Client, table: str = "metal_prices") -> None:
        self._client = client
        self._table = table

    @classmethod
    def from_credentials(
        cls, url: str, service_key: str, table: str = "metal_prices"
    ) -> "SupabasePriceStore":
        return cls(create_client(url, service_key), table=table)

    # ------------------------------------------------------------------
    # IPriceStore interface
    # ------------------------------------------------------------------

    async def get_by_date(self, day: date, metals: Iterable[str]) -> list[PriceRecord]:
        codes = list(metals)

        def query() -> list[dict]:
            return (
                self._client.table(self._table)
                .select(PRICE_COLUMNS)
                .eq("date", day.isoformat())
                .in_("metal_name", codes)
                .execute()
                .data
            )

        rows = await self._run("get_by_date", query)
        return [r for r in (row_to_record(row) for row in rows) if r is not None]

    async def get_by_range(
        self, start: date, end: date, metals: Iterable[str]
    ) -> list[DaySnapshot]:
        codes = list(metals)

        def query() -> list[dict]:
            rows: list[dict] = []
            offset = 0
            while True:
                page = (
                    self._client.table(self._table)
                    .select(PRICE_COLUMNS)
                    .gte("date", start.isoformat())
                    .lte("date", end.isoformat())
                    .in_("metal_name", codes)
                    .order("date")
                    .range(offset, offset + self.PAGE_SIZE - 1)
                    .execute()
                    .data
                )
                rows.extend(page)
                if len(page) < self.PAGE_SIZE:
                    return rows
                offset += self.PAGE_SIZE

        rows = await self._run("get_by_range", query)
        by_date: dict[date, list[PriceRecord]] = defaultdict(list)
        for row in rows:
            record = row_to_record(row)
            if record is not None:
                by_date[record.date].append(record)
        return [
            DaySnapshot(date=day, records=tuple(records))
            for day, records in sorted(by_date.items())
        ]

    async def get_latest_date(self) -> Optional[date]:
        return await self._edge_date(descending=True)

    async def get_oldest_and_newest_dates(self) -> tuple[Optional[date], Optional[date]]:
        oldest, newest = await asyncio.gather(
            self._edge_date(descending=False),
            self._edge_date(descending=True),
        )
        return oldest, newest

    # ------------------------------------------------------------------
    # IMetalCatalog interface
    # ------------------------------------------------------------------

    async def list_metals(self) -> list[str]:
        latest = await self.get_latest_date()
        if latest is None:
            return []

        def query() -> list[dict]:
            return (
                self._client.table(self._table)
                .select("metal_name")
                .eq("date", latest.isoformat())
                .execute()
                .data
            )

        rows = await self._run("list_metals", query)
        return sorted({row["metal_name"] for row in rows if row.get("metal_name")})

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _edge_date(self, descending: bool) -> Optional[date]:
        def query() -> list[dict]:
            return (
                self._client.table(self._table)
                .select("date")
                .order("date", desc=descending)
                .limit(1)
                .execute()
                .data
            )

        rows = await self._run("edge_date", query)
        if not rows:
            return None
        return date.fromisoformat(str(rows[0]["date"])[:10])

    async def _run(self, operation: str, query: Callable[[], list[dict]]) -> list[dict]:
        try:
            return await asyncio.to_thread(query) or []
        except (APIError, httpx.HTTPError) as exc:
            logger.error("Price store %s failed: %s", operation, exc)
            raise StoreUnavailableError() from exc
