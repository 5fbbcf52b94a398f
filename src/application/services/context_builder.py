"""
Statistics & context builder: resolved store rows -> GroundedContext.

For each intent this service fetches what it needs through the resolver, derives
the numbers with the helpers in statistics.py and emits
  - a context block: human-readable evidence lines, and
  - a suggested answer: a finished sentence quoting those exact figures.
The generative step may rephrase the suggested answer but never re-derives it.
"""

import asyncio
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from src.application.agent.prompts import (
    CAPABILITIES_INFO,
    GOLD_PURITY_INFO,
    NO_DATA_AT_ALL,
    TRACKED_METALS_INFO,
)
from src.application.services.price_resolver import NearestDataResolver
from src.application.services.statistics import (
    UNCHANGED,
    compute_changes,
    format_inr,
    format_percent,
    format_signed_inr,
    gold_first,
    price_series,
    rank_metals,
    series_stats,
)
from src.domain.entities.chat import (
    GroundedContext,
    Intent,
    MetalSelection,
    NotFound,
    ResolvedRows,
)
from src.domain.entities.date_query import DateQuery, DateRange, NoDate, SingleDate
from src.domain.entities.metal_price import GOLD, METAL_NAMES, DaySnapshot, metal_label

logger = logging.getLogger(__name__)


class StatisticsContextBuilder:
    TRAILING_DAYS: int = 7

    def __init__(self, resolver: NearestDataResolver) -> None:
        self._resolver = resolver

    async def build(
        self,
        intent: Intent,
        date_query: DateQuery,
        metals: MetalSelection,
    ) -> GroundedContext:
        """Build evidence and a suggested answer for one classified question.

        Raises:
            StoreUnavailableError: propagated from the price store.
        """
        if intent in (Intent.CARATS, Intent.HELP):
            return self.informational(intent)
        handlers = {
            Intent.PRICE: self._price,
            Intent.COMPARE: self._compare,
            Intent.TREND: self._trend,
            Intent.RANK: self._rank,
            Intent.AVERAGE: self._average,
            Intent.DATERANGE: self._available_dates,
        }
        return await handlers[intent](date_query, metals)

    @staticmethod
    def informational(intent: Intent) -> GroundedContext:
        """Fixed-shape answers that need no price data."""
        if intent == Intent.CARATS:
            return GroundedContext(
                intent=intent,
                context_block=(GOLD_PURITY_INFO,),
                suggested_answer=GOLD_PURITY_INFO,
                site_info=GOLD_PURITY_INFO,
            )
        info = f"{CAPABILITIES_INFO}\n\n{TRACKED_METALS_INFO}"
        return GroundedContext(
            intent=Intent.HELP,
            context_block=(info,),
            suggested_answer=info,
            site_info=info,
        )

    # ------------------------------------------------------------------
    # Per-intent builders
    # ------------------------------------------------------------------

    async def _price(self, date_query: DateQuery, metals: MetalSelection) -> GroundedContext:
        resolution = await self._resolver.resolve(date_query, metals)
        if isinstance(resolution, NotFound):
            return self._apology(Intent.PRICE, resolution, metals)
        if isinstance(date_query, DateRange):
            return self._history(Intent.PRICE, resolution, date_query, self._primary(metals))

        snapshot = resolution.latest
        note = self._closest_note(resolution)
        latest = isinstance(date_query, NoDate)
        return GroundedContext(
            intent=Intent.PRICE,
            context_block=(format_snapshot(snapshot, note),),
            suggested_answer=self._price_sentence(snapshot, metals, note, latest),
        )

    async def _compare(self, date_query: DateQuery, metals: MetalSelection) -> GroundedContext:
        if isinstance(date_query, NoDate):
            pair = await self._latest_and_previous(metals)
        else:
            asked, latest = await self._resolver.resolve_pair(date_query, NoDate(), metals)
            if isinstance(asked, NotFound):
                return self._apology(Intent.COMPARE, asked, metals)
            if isinstance(latest, NotFound):
                return self._apology(Intent.COMPARE, latest, metals)
            if asked.earliest.date < latest.latest.date:
                pair = (asked, latest)
            else:
                # The asked date is already the latest: compare against the day before.
                pair = await self._previous_of(latest, metals)
        if isinstance(pair, NotFound):
            return self._apology(Intent.COMPARE, pair, metals)

        old_rows, new_rows = pair
        old, new = old_rows.earliest, new_rows.latest
        codes = gold_first(await self._resolver.target_metals(metals))
        changes = compute_changes(old, new, codes)

        context = [
            format_snapshot(old, self._closest_note(old_rows)),
            format_snapshot(new, " (latest)"),
            format_ranking(new, codes),
        ]
        if not changes:
            return GroundedContext(intent=Intent.COMPARE, context_block=tuple(context))

        lines = []
        for change in changes:
            label = metal_label(change.metal)
            if change.direction == UNCHANGED:
                lines.append(f"{label}: UNCHANGED at {format_inr(change.new_price)}")
            else:
                lines.append(
                    f"{label}: {change.direction} by {format_inr(change.delta)} "
                    f"({format_percent(change.percent)})"
                )
        header = f"Price changes from {old.date.isoformat()} to {new.date.isoformat()}:"
        changes_text = "\n".join([header, *lines])
        context.append(changes_text)
        return GroundedContext(
            intent=Intent.COMPARE,
            context_block=tuple(context),
            suggested_answer=changes_text,
        )

    async def _trend(self, date_query: DateQuery, metals: MetalSelection) -> GroundedContext:
        window = await self._trailing_window(date_query)
        if isinstance(window, NotFound):
            return self._apology(Intent.TREND, window, metals)
        primary = self._primary(metals)
        resolution = await self._resolver.resolve(window, self._only(primary))
        if isinstance(resolution, NotFound):
            return self._apology(Intent.TREND, resolution, metals)
        return self._history(Intent.TREND, resolution, window, primary)

    async def _rank(self, date_query: DateQuery, metals: MetalSelection) -> GroundedContext:
        resolution = await self._resolver.resolve(date_query, metals)
        if isinstance(resolution, NotFound):
            return self._apology(Intent.RANK, resolution, metals)
        snapshot = resolution.latest
        codes = await self._resolver.target_metals(metals)
        ranked = rank_metals(snapshot, codes)
        ranking = format_ranking(snapshot, codes)
        if not ranked:
            return GroundedContext(intent=Intent.RANK, context_block=(ranking,))

        cheapest, dearest = ranked[0][0], ranked[-1][0]
        suggested = (
            f"{ranking}\n"
            f"Cheapest: {metal_label(cheapest)}. Most expensive: {metal_label(dearest)}."
        )
        return GroundedContext(
            intent=Intent.RANK,
            context_block=(format_snapshot(snapshot, self._closest_note(resolution)), ranking),
            suggested_answer=suggested,
        )

    async def _average(self, date_query: DateQuery, metals: MetalSelection) -> GroundedContext:
        window = await self._trailing_window(date_query)
        if isinstance(window, NotFound):
            return self._apology(Intent.AVERAGE, window, metals)
        primary = self._primary(metals)
        resolution = await self._resolver.resolve(window, self._only(primary))
        if isinstance(resolution, NotFound):
            return self._apology(Intent.AVERAGE, resolution, metals)

        points = price_series(resolution.snapshots, primary)
        stats = series_stats(points)
        series_text = format_series(primary, window, points)
        if stats is None:
            return GroundedContext(intent=Intent.AVERAGE, context_block=(series_text,))

        plural = "point" if stats.count == 1 else "points"
        suggested = (
            f"Average {metal_label(primary)} price ({window.describe()}): "
            f"{format_inr(stats.average)} per gram across {stats.count} data {plural}."
        )
        return GroundedContext(
            intent=Intent.AVERAGE,
            context_block=(series_text, suggested),
            suggested_answer=suggested,
        )

    async def _available_dates(
        self, date_query: DateQuery, metals: MetalSelection
    ) -> GroundedContext:
        oldest, newest = await self._resolver.bounds()
        if oldest is None or newest is None:
            return self._apology(
                Intent.DATERANGE, NotFound(requested=date_query, oldest=None, newest=None), metals
            )
        text = (
            f"Our database has metal prices from {oldest.isoformat()} to {newest.isoformat()}."
        )
        return GroundedContext(
            intent=Intent.DATERANGE,
            context_block=(text, TRACKED_METALS_INFO),
            suggested_answer=text,
            site_info=TRACKED_METALS_INFO,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _primary(metals: MetalSelection) -> str:
        return metals.primary or GOLD

    @staticmethod
    def _only(metal: str) -> MetalSelection:
        return MetalSelection(codes=frozenset({metal}), primary=metal)

    @staticmethod
    def _closest_note(resolution: ResolvedRows) -> str:
        if resolution.closest_to is None:
            return ""
        return f" (closest to {resolution.closest_to.isoformat()})"

    async def _trailing_window(self, date_query: DateQuery) -> DateRange | NotFound:
        """The asked range, else the trailing window ending at the asked or latest date."""
        if isinstance(date_query, DateRange):
            return date_query
        if isinstance(date_query, SingleDate):
            end = date_query.date
        else:
            latest = await self._resolver.latest_date()
            if latest is None:
                return NotFound(requested=date_query, oldest=None, newest=None)
            end = latest
        return DateRange(end - timedelta(days=self.TRAILING_DAYS), end)

    async def _latest_and_previous(
        self, metals: MetalSelection
    ) -> tuple[ResolvedRows, ResolvedRows] | NotFound:
        latest_day = await self._resolver.latest_date()
        if latest_day is None:
            return NotFound(requested=NoDate(), oldest=None, newest=None)
        latest, previous = await asyncio.gather(
            self._resolver.resolve(SingleDate(latest_day), metals),
            self._resolver.resolve_previous(latest_day, metals),
        )
        if isinstance(latest, NotFound):
            return latest
        if isinstance(previous, NotFound):
            return previous
        return previous, latest

    async def _previous_of(
        self, latest: ResolvedRows, metals: MetalSelection
    ) -> tuple[ResolvedRows, ResolvedRows] | NotFound:
        previous = await self._resolver.resolve_previous(latest.latest.date, metals)
        if isinstance(previous, NotFound):
            return previous
        return previous, latest

    def _history(
        self,
        intent: Intent,
        resolution: ResolvedRows,
        window: DateRange,
        metal: str,
    ) -> GroundedContext:
        points = price_series(resolution.snapshots, metal)
        stats = series_stats(points)
        series_text = format_series(metal, window, points)
        label = metal_label(metal)
        if stats is None:
            return GroundedContext(intent=intent, context_block=(series_text,))

        if stats.count == 1:
            suggested = (
                f"{label} on {stats.last_date.isoformat()}: {format_inr(stats.last)} per gram. "
                f"This is the only data point between {window.start.isoformat()} "
                f"and {window.end.isoformat()}."
            )
            return GroundedContext(
                intent=intent, context_block=(series_text,), suggested_answer=suggested
            )

        summary = (
            f"Lowest: {format_inr(stats.lowest)} | Highest: {format_inr(stats.highest)} | "
            f"Average: {format_inr(stats.average)}\n"
            f"Change: {format_signed_inr(stats.change)} ({format_percent(stats.percent)})"
        )
        if intent == Intent.TREND:
            movement = {"UP": "up", "DOWN": "down"}.get(stats.direction)
            overall = (
                f"Overall {movement} by {format_inr(abs(stats.change))} "
                f"({format_percent(stats.percent)})."
                if movement
                else f"Overall unchanged ({format_percent(stats.percent)})."
            )
            suggested = (
                f"{label} trend ({window.describe()}): Lowest {format_inr(stats.lowest)}, "
                f"Highest {format_inr(stats.highest)}. {overall}"
            )
        else:
            suggested = (
                f"{label} from {window.start.isoformat()} to {window.end.isoformat()}: "
                f"Lowest {format_inr(stats.lowest)}, Highest {format_inr(stats.highest)}, "
                f"Average {format_inr(stats.average)} per gram. Overall change: "
                f"{format_signed_inr(stats.change)} ({format_percent(stats.percent)})."
            )
        return GroundedContext(
            intent=intent,
            context_block=(f"{series_text}\n\n{summary}",),
            suggested_answer=suggested,
        )

    @staticmethod
    def _price_sentence(
        snapshot: DaySnapshot,
        metals: MetalSelection,
        note: str,
        latest: bool,
    ) -> Optional[str]:
        day = snapshot.date.isoformat()
        if len(metals) == 1:
            metal = next(iter(metals.codes))
            if metal == GOLD:
                carats = snapshot.gold_carats()
                if not carats:
                    return None
                lines = [f"{r.carat}K: {format_inr(r.price_per_gram)} per gram" for r in carats]
                heading = (
                    f"Latest gold prices ({day}):" if latest else f"Gold prices on {day}{note}:"
                )
                return "\n".join([heading, *lines])
            price = snapshot.price_per_gram(metal)
            if price is None:
                return None
            name = METAL_NAMES.get(metal, metal)
            if latest:
                return f"Latest {name} price ({day}): {format_inr(price)} per gram."
            return f"{name} price on {day}{note}: {format_inr(price)} per gram."

        codes = metals.codes if not metals.is_all else snapshot.metals()
        lines = []
        for metal in gold_first(codes):
            price = snapshot.price_per_gram(metal)
            if price is not None:
                lines.append(f"{metal_label(metal)}: {format_inr(price)} per gram")
        if not lines:
            return None
        heading = f"Latest metal prices ({day}):" if latest else f"Metal prices on {day}{note}:"
        return "\n".join([heading, *lines])

    @staticmethod
    def _apology(intent: Intent, missing: NotFound, metals: MetalSelection) -> GroundedContext:
        logger.info("No data for %s (%s)", missing.requested.describe(), intent.value)
        if missing.oldest is None or missing.newest is None:
            text = NO_DATA_AT_ALL
        else:
            bounds = (
                f"Our database has prices from {missing.oldest.isoformat()} "
                f"to {missing.newest.isoformat()}."
            )
            requested = missing.requested
            if isinstance(requested, SingleDate):
                text = f"Sorry, no price data found for {requested.date.isoformat()}. {bounds}"
            elif isinstance(requested, DateRange):
                text = (
                    f"Sorry, no price data found between {requested.start.isoformat()} "
                    f"and {requested.end.isoformat()}. {bounds}"
                )
            else:
                names = ", ".join(METAL_NAMES.get(m, m) for m in gold_first(metals.codes))
                text = f"Sorry, no price data is available for {names or 'these metals'}. {bounds}"
        return GroundedContext(
            intent=intent,
            context_block=(text,),
            suggested_answer=text,
            not_found=missing,
        )


# ----------------------------------------------------------------------
# Evidence formatting
# ----------------------------------------------------------------------


def format_snapshot(snapshot: DaySnapshot, note: str = "") -> str:
    lines = [f"Date: {snapshot.date.isoformat()}{note}", "---"]
    for metal in gold_first(snapshot.metals()):
        if metal == GOLD:
            carats = snapshot.gold_carats()
            if not carats:
                lines.append("Gold: data not available")
            for record in carats:
                lines.append(f"Gold {record.carat}K = {format_inr(record.price_per_gram)} per gram")
            continue
        price = snapshot.price_per_gram(metal)
        if price is not None:
            lines.append(f"{METAL_NAMES.get(metal, metal)} = {format_inr(price)} per gram")
    return "\n".join(lines)


def format_ranking(snapshot: DaySnapshot, metals: list[str]) -> str:
    ranked = rank_metals(snapshot, metals)
    lines = [f"Metal prices ranked cheapest to most expensive ({snapshot.date.isoformat()}):"]
    lines += [
        f"{position}. {metal_label(metal)}: {format_inr(price)} per gram"
        for position, (metal, price) in enumerate(ranked, start=1)
    ]
    return "\n".join(lines)


def format_series(metal: str, window: DateRange, points: list[tuple[date, Decimal]]) -> str:
    lines = [f"{metal_label(metal)} price history ({window.describe()}):"]
    lines += [f"{day.isoformat()}: {format_inr(price)} per gram" for day, price in points]
    if not points:
        lines.append("No data points in this window.")
    return "\n".join(lines)
