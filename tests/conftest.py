"""Shared fixtures: price records, in-memory store, stub generative backends."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from src.domain.entities.chat import GenerationRequest
from src.domain.entities.metal_price import PriceRecord
from src.domain.errors import GenerativeBackendError, StoreUnavailableError
from src.domain.ports.generative_backend_port import IGenerativeBackend
from src.infrastructure.price_store.in_memory_store import InMemoryPriceStore

TODAY = date(2026, 3, 5)


def gold(day: date, price: str, carat: str = "22") -> PriceRecord:
    return PriceRecord(date=day, metal="XAU", carat=carat, price_per_gram=Decimal(price))


def metal(code: str, day: date, price: str) -> PriceRecord:
    return PriceRecord(date=day, metal=code, carat=None, price_per_gram=Decimal(price))


class StubBackend(IGenerativeBackend):
    """Always succeeds; records every request it receives."""

    def __init__(self, text: str = "stub answer", chunks: tuple[str, ...] = ("stub ", "answer")):
        self.text = text
        self.chunks = chunks
        self.requests: list[GenerationRequest] = []

    async def generate(self, request):
        self.requests.append(request)
        return self.text

    async def stream(self, request):
        self.requests.append(request)
        for chunk in self.chunks:
            yield chunk


class FailingBackend(IGenerativeBackend):
    def __init__(self):
        self.calls = 0

    async def generate(self, request):
        self.calls += 1
        raise GenerativeBackendError("connection refused")

    async def stream(self, request):
        self.calls += 1
        raise GenerativeBackendError("connection refused")
        yield  # pragma: no cover


class HangingBackend(IGenerativeBackend):
    """Never answers within any reasonable timeout."""

    def __init__(self):
        self.closed = False

    async def generate(self, request):
        await asyncio.sleep(3600)
        return "too late"

    async def stream(self, request):
        try:
            await asyncio.sleep(3600)
            yield "too late"
        finally:
            self.closed = True


class EndlessStreamBackend(IGenerativeBackend):
    """Streams chunks forever; records whether the stream was closed."""

    def __init__(self):
        self.closed = False
        self.emitted = 0

    async def generate(self, request):
        return "endless"

    async def stream(self, request):
        try:
            while True:
                await asyncio.sleep(0)
                self.emitted += 1
                yield f"chunk{self.emitted} "
        finally:
            self.closed = True


class BrokenStore(InMemoryPriceStore):
    async def get_by_date(self, day, metals):
        raise StoreUnavailableError()

    async def get_by_range(self, start, end, metals):
        raise StoreUnavailableError()

    async def get_latest_date(self):
        raise StoreUnavailableError()

    async def get_oldest_and_newest_dates(self):
        raise StoreUnavailableError()


@pytest.fixture
def scenario_b_store() -> InMemoryPriceStore:
    """Latest 2026-03-01, previous 2026-02-28, gold and silver."""
    return InMemoryPriceStore([
        gold(date(2026, 2, 28), "7550.00"),
        metal("XAG", date(2026, 2, 28), "96.00"),
        gold(date(2026, 3, 1), "7600.00"),
        metal("XAG", date(2026, 3, 1), "95.20"),
    ])


@pytest.fixture
def week_store() -> InMemoryPriceStore:
    """Eight consecutive days (2026-02-22 .. 2026-03-01) of gold 22K/24K and silver."""
    days = [date(2026, 2, d) for d in range(22, 29)] + [date(2026, 3, 1)]
    gold_prices = ["7500.00", "7510.00", "7490.00", "7520.00", "7560.00", "7540.00", "7580.00", "7600.00"]
    silver_prices = ["97.00", "96.50", "96.80", "96.20", "95.90", "96.10", "96.00", "95.20"]
    records = []
    for day, g, s in zip(days, gold_prices, silver_prices):
        records.append(gold(day, g))
        records.append(gold(day, str(Decimal(g) + 600), carat="24"))
        records.append(metal("XAG", day, s))
    return InMemoryPriceStore(records)
