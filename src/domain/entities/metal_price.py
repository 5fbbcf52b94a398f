"""
Domain entities for stored metal prices.
Zero external dependencies, pure Python dataclasses only.

Prices are Indian Rupees. Gold carries one record per carat variant per date;
every other metal carries a single carat-less record per date.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

GOLD = "XAU"

METAL_NAMES: dict[str, str] = {
    "XAU": "Gold",
    "XAG": "Silver",
    "XPT": "Platinum",
    "XPD": "Palladium",
    "XCU": "Copper",
    "LEAD": "Lead",
    "NI": "Nickel",
    "ZNC": "Zinc",
    "ALU": "Aluminium",
}

# Carat label -> purity multiplier applied by the ingestion pipeline.
GOLD_PURITY: dict[str, Decimal] = {
    "24": Decimal("1.0"),
    "22": Decimal("0.916"),
    "18": Decimal("0.75"),
}

# Gold is ranked and compared on its 22K variant.
REFERENCE_CARAT = "22"


def metal_label(metal: str) -> str:
    """Display name for *metal*, with the reference carat for gold."""
    if metal == GOLD:
        return f"Gold ({REFERENCE_CARAT}K)"
    return METAL_NAMES.get(metal, metal)


@dataclass(frozen=True)
class PriceRecord:
    date: date
    metal: str
    carat: Optional[str]
    price_per_gram: Decimal
    price_per_eight_grams: Optional[Decimal] = None
    price_per_kilogram: Optional[Decimal] = None


@dataclass(frozen=True)
class DaySnapshot:
    """Every record the store holds for one date, restricted to the requested metals."""

    date: date
    records: tuple[PriceRecord, ...]

    def metals(self) -> list[str]:
        seen: list[str] = []
        for record in self.records:
            if record.metal not in seen:
                seen.append(record.metal)
        return seen

    def gold_carats(self) -> list[PriceRecord]:
        """Gold records in descending purity order (24K, 22K, 18K, ...)."""
        carats = [r for r in self.records if r.metal == GOLD and r.carat]
        return sorted(carats, key=lambda r: int(r.carat), reverse=True)

    def price_per_gram(self, metal: str) -> Optional[Decimal]:
        """Per-gram price of *metal*; gold is pinned to its reference carat."""
        for record in self.records:
            if record.metal != metal:
                continue
            if metal == GOLD and record.carat != REFERENCE_CARAT:
                continue
            return record.price_per_gram
        return None
