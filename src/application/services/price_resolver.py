"""
Nearest-data resolver: DateQuery + MetalSelection -> ResolvedRows | NotFound.

Lookup policy:
  - SingleDate: exact date, else the MOST RECENT date with data in [d-3, d+3].
    This is a recency bias, not nearest-neighbour: with data at d-3 and d+1 the
    d+1 snapshot wins.
  - DateRange: every date with data in [start, end], no widening.
  - NoDate: the latest date with any data.
A miss is returned as NotFound carrying the store's oldest/newest dates.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Optional

from src.application.services.ttl_cache import TTLCache
from src.domain.entities.chat import MetalSelection, NotFound, Resolution, ResolvedRows
from src.domain.entities.date_query import DateQuery, DateRange, NoDate, SingleDate
from src.domain.entities.metal_price import METAL_NAMES, DaySnapshot
from src.domain.ports.metal_catalog_port import IMetalCatalog
from src.domain.ports.price_store_port import IPriceStore

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_TTL_SECONDS = 24 * 60 * 60


class NearestDataResolver:
    WINDOW_DAYS: int = 3

    def __init__(
        self,
        store: IPriceStore,
        catalog: Optional[IMetalCatalog] = None,
        metal_cache: Optional[TTLCache[list[str]]] = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._metal_cache = metal_cache or TTLCache(DEFAULT_CATALOG_TTL_SECONDS)

    async def tracked_metals(self) -> list[str]:
        """Metal codes the store tracks, refreshed through the TTL cache."""
        if self._catalog is None:
            return list(METAL_NAMES)
        codes = await self._metal_cache.refresh_if_stale(self._catalog.list_metals)
        return list(codes) or list(METAL_NAMES)

    async def target_metals(self, metals: MetalSelection) -> list[str]:
        if metals.is_all:
            return await self.tracked_metals()
        return sorted(metals.codes)

    async def latest_date(self) -> Optional[date]:
        return await self._store.get_latest_date()

    async def bounds(self) -> tuple[Optional[date], Optional[date]]:
        """Oldest and newest dates the store holds, (None, None) when empty."""
        return await self._store.get_oldest_and_newest_dates()

    async def resolve(self, date_query: DateQuery, metals: MetalSelection) -> Resolution:
        """Fetch the rows a question refers to.

        Raises:
            StoreUnavailableError: propagated from the price store.
        """
        codes = await self.target_metals(metals)
        if isinstance(date_query, SingleDate):
            return await self._resolve_single(date_query, codes)
        if isinstance(date_query, DateRange):
            return await self._resolve_range(date_query, codes)
        return await self._resolve_latest(date_query, codes)

    async def resolve_previous(self, before: date, metals: MetalSelection) -> Resolution:
        """Most recent snapshot strictly before *before*, looking back one window."""
        codes = await self.target_metals(metals)
        target = before - timedelta(days=1)
        query = SingleDate(target)
        window = await self._store.get_by_range(
            target - timedelta(days=self.WINDOW_DAYS), target, codes
        )
        if not window:
            return await self._not_found(query)
        pick = max(window, key=lambda s: s.date)
        closest_to = target if pick.date != target else None
        return ResolvedRows(requested=query, snapshots=(pick,), closest_to=closest_to)

    async def _resolve_single(self, query: SingleDate, codes: list[str]) -> Resolution:
        records = await self._store.get_by_date(query.date, codes)
        if records:
            return ResolvedRows(
                requested=query,
                snapshots=(DaySnapshot(date=query.date, records=tuple(records)),),
            )

        window = await self._store.get_by_range(
            query.date - timedelta(days=self.WINDOW_DAYS),
            query.date + timedelta(days=self.WINDOW_DAYS),
            codes,
        )
        if not window:
            logger.info("No prices within %d days of %s", self.WINDOW_DAYS, query.date)
            return await self._not_found(query)

        pick = max(window, key=lambda s: s.date)
        logger.info("No prices on %s, using %s from the window", query.date, pick.date)
        return ResolvedRows(requested=query, snapshots=(pick,), closest_to=query.date)

    async def _resolve_range(self, query: DateRange, codes: list[str]) -> Resolution:
        snapshots = await self._store.get_by_range(query.start, query.end, codes)
        if not snapshots:
            return await self._not_found(query)
        return ResolvedRows(
            requested=query,
            snapshots=tuple(sorted(snapshots, key=lambda s: s.date)),
        )

    async def _resolve_latest(self, query: NoDate, codes: list[str]) -> Resolution:
        latest = await self._store.get_latest_date()
        if latest is None:
            return await self._not_found(query)
        records = await self._store.get_by_date(latest, codes)
        if not records:
            return await self._not_found(query)
        return ResolvedRows(
            requested=query,
            snapshots=(DaySnapshot(date=latest, records=tuple(records)),),
        )

    async def _not_found(self, query: DateQuery) -> NotFound:
        oldest, newest = await self.bounds()
        return NotFound(requested=query, oldest=oldest, newest=newest)

    async def resolve_pair(
        self,
        first: DateQuery,
        second: DateQuery,
        metals: MetalSelection,
    ) -> tuple[Resolution, Resolution]:
        """Resolve two independent queries concurrently."""
        one, two = await asyncio.gather(
            self.resolve(first, metals),
            self.resolve(second, metals),
        )
        return one, two
