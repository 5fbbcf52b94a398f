"""
Tests for NearestDataResolver.

Covers exact hits, the recency-biased ±3 day window, ranges without widening,
latest-date resolution, NotFound bounds and the metal catalog cache.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from src.application.services.price_resolver import NearestDataResolver
from src.application.services.ttl_cache import TTLCache
from src.domain.entities.chat import MetalSelection, NotFound, ResolvedRows
from src.domain.entities.date_query import DateRange, NoDate, SingleDate
from src.domain.errors import StoreUnavailableError
from src.domain.entities.metal_price import METAL_NAMES
from src.infrastructure.price_store.in_memory_store import InMemoryPriceStore
from tests.conftest import BrokenStore, gold, metal

GOLD_ONLY = MetalSelection(codes=frozenset({"XAU"}), primary="XAU")
ALL = MetalSelection()


@pytest.fixture
def sparse_store() -> InMemoryPriceStore:
    return InMemoryPriceStore([
        gold(date(2026, 2, 20), "7432.10"),
        gold(date(2026, 2, 25), "7510.00"),
        metal("XAG", date(2026, 2, 25), "94.10"),
    ])


class TestSingleDate:
    def test_exact_hit(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve(SingleDate(date(2026, 2, 20)), GOLD_ONLY))
        assert isinstance(result, ResolvedRows)
        assert result.latest.date == date(2026, 2, 20)
        assert result.closest_to is None

    def test_window_prefers_most_recent_date(self, sparse_store):
        """Data at d-2 and d+3: the d+3 snapshot wins."""
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve(SingleDate(date(2026, 2, 22)), GOLD_ONLY))
        assert result.latest.date == date(2026, 2, 25)
        assert result.latest.price_per_gram("XAU") == Decimal("7510.00")
        assert result.closest_to == date(2026, 2, 22)

    def test_window_edge_is_inclusive(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve(SingleDate(date(2026, 2, 17)), GOLD_ONLY))
        assert result.latest.date == date(2026, 2, 20)

    def test_outside_window_is_not_found(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve(SingleDate(date(2026, 1, 1)), GOLD_ONLY))
        assert isinstance(result, NotFound)
        assert result.oldest == date(2026, 2, 20)
        assert result.newest == date(2026, 2, 25)

    def test_window_is_metal_filtered(self, sparse_store):
        silver = MetalSelection(codes=frozenset({"XAG"}), primary="XAG")
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve(SingleDate(date(2026, 2, 19)), silver))
        assert isinstance(result, NotFound)

    def test_rows_never_outside_window(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        asked = date(2026, 2, 23)
        result = asyncio.run(resolver.resolve(SingleDate(asked), GOLD_ONLY))
        assert abs((result.latest.date - asked).days) <= NearestDataResolver.WINDOW_DAYS


class TestRangeAndLatest:
    def test_range_returns_every_date_ascending(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        query = DateRange(date(2026, 2, 1), date(2026, 2, 28))
        result = asyncio.run(resolver.resolve(query, GOLD_ONLY))
        assert [s.date for s in result.snapshots] == [date(2026, 2, 20), date(2026, 2, 25)]

    def test_range_is_not_widened(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        query = DateRange(date(2026, 2, 21), date(2026, 2, 24))
        assert isinstance(asyncio.run(resolver.resolve(query, GOLD_ONLY)), NotFound)

    def test_latest(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve(NoDate(), ALL))
        assert result.latest.date == date(2026, 2, 25)
        assert set(result.latest.metals()) == {"XAU", "XAG"}

    def test_empty_store(self):
        resolver = NearestDataResolver(InMemoryPriceStore())
        result = asyncio.run(resolver.resolve(NoDate(), ALL))
        assert result == NotFound(requested=NoDate(), oldest=None, newest=None)

    def test_previous_skips_gaps(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve_previous(date(2026, 2, 23), GOLD_ONLY))
        assert result.latest.date == date(2026, 2, 20)
        assert result.closest_to == date(2026, 2, 22)

    def test_previous_never_returns_the_anchor_date(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        result = asyncio.run(resolver.resolve_previous(date(2026, 2, 25), GOLD_ONLY))
        assert isinstance(result, NotFound)

    def test_pair_resolves_both(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        first, second = asyncio.run(
            resolver.resolve_pair(SingleDate(date(2026, 2, 20)), NoDate(), GOLD_ONLY)
        )
        assert first.latest.date == date(2026, 2, 20)
        assert second.latest.date == date(2026, 2, 25)

    def test_store_failure_propagates(self):
        resolver = NearestDataResolver(BrokenStore())
        with pytest.raises(StoreUnavailableError):
            asyncio.run(resolver.resolve(NoDate(), GOLD_ONLY))


class CountingCatalog:
    def __init__(self, metals):
        self.metals = metals
        self.calls = 0

    async def list_metals(self):
        self.calls += 1
        return list(self.metals)


class TestMetalCatalog:
    def test_without_catalog_uses_known_metals(self, sparse_store):
        resolver = NearestDataResolver(sparse_store)
        assert asyncio.run(resolver.tracked_metals()) == list(METAL_NAMES)

    def test_catalog_is_cached(self, sparse_store):
        catalog = CountingCatalog(["XAU", "XAG"])
        resolver = NearestDataResolver(sparse_store, catalog=catalog, metal_cache=TTLCache(3600))
        asyncio.run(resolver.resolve(NoDate(), ALL))
        asyncio.run(resolver.resolve(NoDate(), ALL))
        assert catalog.calls == 1

    def test_empty_catalog_falls_back(self, sparse_store):
        resolver = NearestDataResolver(sparse_store, catalog=CountingCatalog([]))
        assert asyncio.run(resolver.tracked_metals()) == list(METAL_NAMES)

    def test_explicit_metals_bypass_catalog(self, sparse_store):
        catalog = CountingCatalog(["XAU"])
        resolver = NearestDataResolver(sparse_store, catalog=catalog)
        assert asyncio.run(resolver.target_metals(GOLD_ONLY)) == ["XAU"]
        assert catalog.calls == 0
