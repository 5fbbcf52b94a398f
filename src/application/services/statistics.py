"""
Deterministic price statistics and rupee formatting.

Currency values are rounded half-up to 2 decimals; percentage change is
(new - old) / old * 100 rounded the same way. Every figure quoted in evidence or in
a suggested answer comes from these helpers, so the text can never disagree with
the numbers.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from src.domain.entities.metal_price import GOLD, DaySnapshot

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

UP = "UP"
DOWN = "DOWN"
UNCHANGED = "UNCHANGED"


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_inr(value: Decimal) -> str:
    """Format *value* as rupees with Indian digit grouping, e.g. ₹1,23,456.78."""
    amount = money(value)
    sign = "-" if amount < 0 else ""
    integer, fraction = f"{abs(amount):.2f}".split(".")
    head, tail = integer[:-3], integer[-3:]
    groups: list[str] = []
    while head:
        groups.insert(0, head[-2:])
        head = head[:-2]
    return f"{sign}₹{','.join(groups + [tail])}.{fraction}"


def format_signed_inr(value: Decimal) -> str:
    return f"+{format_inr(value)}" if money(value) > 0 else format_inr(value)


def format_percent(value: Optional[Decimal]) -> str:
    if value is None:
        return "n/a"
    return f"{value:+.2f}%"


def percent_change(old: Decimal, new: Decimal) -> Optional[Decimal]:
    if old == 0:
        return None
    return ((new - old) / old * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def direction(old: Decimal, new: Decimal) -> str:
    if new > old:
        return UP
    if new < old:
        return DOWN
    return UNCHANGED


@dataclass(frozen=True)
class PriceChange:
    metal: str
    old_price: Decimal
    new_price: Decimal
    delta: Decimal
    percent: Optional[Decimal]
    direction: str


def price_change(metal: str, old: Decimal, new: Decimal) -> PriceChange:
    return PriceChange(
        metal=metal,
        old_price=money(old),
        new_price=money(new),
        delta=money(abs(new - old)),
        percent=percent_change(old, new),
        direction=direction(old, new),
    )


def compute_changes(
    old: DaySnapshot, new: DaySnapshot, metals: Iterable[str]
) -> list[PriceChange]:
    """Per-metal change between two snapshots; metals missing on either side are skipped."""
    changes: list[PriceChange] = []
    for metal in metals:
        old_price = old.price_per_gram(metal)
        new_price = new.price_per_gram(metal)
        if old_price is None or new_price is None:
            continue
        changes.append(price_change(metal, old_price, new_price))
    return changes


@dataclass(frozen=True)
class SeriesStats:
    count: int
    first_date: date
    last_date: date
    lowest: Decimal
    highest: Decimal
    average: Decimal
    first: Decimal
    last: Decimal
    change: Decimal
    percent: Optional[Decimal]

    @property
    def direction(self) -> str:
        return direction(self.first, self.last)


def price_series(snapshots: Sequence[DaySnapshot], metal: str) -> list[tuple[date, Decimal]]:
    """(date, price per gram) points for *metal*, ascending, skipping gaps."""
    points: list[tuple[date, Decimal]] = []
    for snapshot in sorted(snapshots, key=lambda s: s.date):
        price = snapshot.price_per_gram(metal)
        if price is not None:
            points.append((snapshot.date, price))
    return points


def series_stats(points: Sequence[tuple[date, Decimal]]) -> Optional[SeriesStats]:
    if not points:
        return None
    values = [price for _, price in points]
    first, last = values[0], values[-1]
    return SeriesStats(
        count=len(values),
        first_date=points[0][0],
        last_date=points[-1][0],
        lowest=money(min(values)),
        highest=money(max(values)),
        average=money(sum(values, Decimal("0")) / len(values)),
        first=money(first),
        last=money(last),
        change=money(last - first),
        percent=percent_change(first, last),
    )


def rank_metals(snapshot: DaySnapshot, metals: Iterable[str]) -> list[tuple[str, Decimal]]:
    """Metals ascending by price per gram, ties broken by metal code.

    Gold takes part with its reference (22K) price.
    """
    ranked: list[tuple[str, Decimal]] = []
    for metal in set(metals):
        price = snapshot.price_per_gram(metal)
        if price is not None:
            ranked.append((metal, money(price)))
    return sorted(ranked, key=lambda item: (item[1], item[0]))


def gold_first(metals: Iterable[str]) -> list[str]:
    """Stable display order: gold, then the rest by code."""
    unique = set(metals)
    rest = sorted(m for m in unique if m != GOLD)
    return ([GOLD] if GOLD in unique else []) + rest
