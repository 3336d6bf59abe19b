"""
Vimshottari dasha calculator.

The timeline after birth is the fixed nine-lord cycle (120 years) entered
part way through the birth nakshatra lord's period. Everything here is
closed-form date arithmetic on top of an injected ``VimshottariTable``.
"""

import logging
import math
import threading
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple, Union

from cachetools import LRUCache

from .constants import DASHA_EFFECTS, DEFAULT_DASHA_EFFECTS, NAKSHATRA_SPAN_DEG
from .errors import CalculationError, ValidationError
from .models import (
    AntardashaPeriod,
    CurrentDasha,
    DashaBalance,
    MahadashaPeriod,
    MoonNakshatra,
    SubPeriod,
    VimshottariTable,
    coerce_model,
)
from .utils import ensure_datetime, isoformat_utc

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 256


def _overlaps(a_start: datetime, a_end: datetime, window_start: datetime, window_end: datetime) -> bool:
    return not (a_end <= window_start or a_start >= window_end)


def _trim_to_window(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> Tuple[datetime, datetime]:
    return max(start, window_start), min(end, window_end)


class DashaCalculator:
    """Generates and queries Mahadasha/Antardasha periods.

    The per-Mahadasha sub-period cache is owned by the instance and bounded; pass
    ``cache_size=0`` to disable it. Lookups are guarded by a lock, so one
    calculator may be shared between threads.
    """

    def __init__(
        self,
        table: Optional[VimshottariTable] = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
        effects: Optional[Dict[str, Dict[str, object]]] = None,
    ):
        self.table = table if table is not None else VimshottariTable()
        self.effects = effects if effects is not None else DASHA_EFFECTS
        if cache_size < 0:
            raise ValidationError(f"Invalid cache size: {cache_size}")
        self._cache = LRUCache(maxsize=cache_size) if cache_size > 0 else None
        self._lock = threading.Lock()

    # ------------------------- Balance -------------------------

    def calculate_dasha_balance(
        self,
        moon_nakshatra: Union[MoonNakshatra, Mapping],
        birth_date: datetime,
    ) -> DashaBalance:
        """Remaining years of the birth nakshatra lord's period at birth."""
        nak = coerce_model(MoonNakshatra, moon_nakshatra, "moon nakshatra")
        ensure_datetime(birth_date, "birth date")

        if not math.isfinite(nak.longitude) or not 0.0 <= nak.longitude < 360.0:
            raise ValidationError(f"Invalid nakshatra longitude: must be in [0, 360), got {nak.longitude}")
        full_years = self.table.years_for(nak.lord)
        if not math.isfinite(nak.degrees_elapsed) or nak.degrees_elapsed >= NAKSHATRA_SPAN_DEG:
            raise ValidationError(
                f"Invalid degrees elapsed: must be in [0, {NAKSHATRA_SPAN_DEG}), got {nak.degrees_elapsed}"
            )

        remaining_fraction = (NAKSHATRA_SPAN_DEG - nak.degrees_elapsed) / NAKSHATRA_SPAN_DEG
        years = remaining_fraction * full_years
        return DashaBalance(lord=nak.lord, years=years, days=years * self.table.days_per_year)

    # ------------------------- Mahadasha -------------------------

    def _check_balance(self, balance) -> DashaBalance:
        balance = coerce_model(DashaBalance, balance, "dasha balance")
        self.table.years_for(balance.lord)
        if not math.isfinite(balance.years) or balance.years < 0:
            raise ValidationError(f"Invalid balance years: must be a non-negative number, got {balance.years}")
        return balance

    def _add_years(self, dt: datetime, years: float) -> datetime:
        return dt + timedelta(days=years * self.table.days_per_year)

    def generate_mahadashas(
        self,
        birth_date: datetime,
        balance: Union[DashaBalance, Mapping],
        cycles: int = 1,
    ) -> List[MahadashaPeriod]:
        """
        Ordered, contiguous Mahadasha periods starting at birth.

        A positive balance yields a leading ``balance`` entry for the birth
        lord, then one full period per lord starting with the next lord and
        ending with the birth lord itself. ``cycles`` appends further full
        nine-lord cycles.
        """
        birth = ensure_datetime(birth_date, "birth date")
        balance = self._check_balance(balance)
        if cycles < 1:
            raise ValidationError(f"Invalid cycles: must be at least 1, got {cycles}")

        periods: List[MahadashaPeriod] = []
        cursor = birth
        if balance.years > 0:
            end = self._add_years(cursor, balance.years)
            periods.append(MahadashaPeriod(balance.lord, cursor, end, balance.years, "balance"))
            cursor = end

        lords = self.table.lords
        start_index = lords.index(balance.lord)
        for k in range(1, len(lords) * cycles + 1):
            lord = lords[(start_index + k) % len(lords)]
            years = self.table.years_for(lord)
            end = self._add_years(cursor, years)
            periods.append(MahadashaPeriod(lord, cursor, end, years))
            cursor = end

        logger.debug(f"Generated {len(periods)} mahadashas from {isoformat_utc(birth)} (balance {balance.lord} {balance.years:.3f}y)")
        return periods

    def get_current_dasha(
        self,
        birth_date: datetime,
        target_date: datetime,
        balance: Union[DashaBalance, Mapping],
    ) -> Optional[CurrentDasha]:
        """Active Mahadasha/Antardasha on ``target_date``.

        Returns None before birth or past the generated horizon.
        """
        birth = ensure_datetime(birth_date, "birth date")
        target = ensure_datetime(target_date, "target date")
        if target < birth:
            return None

        periods = self.generate_mahadashas(birth, balance)
        if target >= periods[-1].end:
            logger.debug(f"Target {isoformat_utc(target)} is beyond the dasha horizon {isoformat_utc(periods[-1].end)}")
            return None

        mahadasha = next((p for p in periods if p.start <= target < p.end), None)
        if mahadasha is None:
            raise CalculationError(f"No mahadasha found for {isoformat_utc(target)} inside the generated horizon")

        antardasha = self.calculate_antardasha(mahadasha, target)
        duration = (mahadasha.end - mahadasha.start).total_seconds()
        progress = (target - mahadasha.start).total_seconds() / duration
        remaining_years = (mahadasha.end - target).total_seconds() / 86400.0 / self.table.days_per_year
        return CurrentDasha(
            mahadasha=mahadasha,
            antardasha=antardasha,
            progress=min(max(progress, 0.0), 1.0),
            remaining_years=remaining_years,
        )

    # ------------------------- Antardasha -------------------------

    def calculate_sub_periods(self, parent: Union[MahadashaPeriod, SubPeriod]) -> List[SubPeriod]:
        """Split a period into nine proportional sub-periods.

        The first sub-lord is the parent's own lord. Boundaries come from
        cumulative shares and the last one is pinned to the parent's end,
        so durations sum exactly to the parent's.
        """
        lord = parent.planet if isinstance(parent, MahadashaPeriod) else parent.lord
        self.table.years_for(lord)
        total_seconds = (parent.end - parent.start).total_seconds()
        if total_seconds <= 0:
            raise ValidationError(f"Invalid period duration for {lord}: must be positive")

        total_years = self.table.total_years
        sub_lords = self.table.sequence_from(lord)
        out: List[SubPeriod] = []
        cursor = parent.start
        cumulative = 0.0
        for i, sub_lord in enumerate(sub_lords):
            share = self.table.years_for(sub_lord)
            cumulative += share
            if i == len(sub_lords) - 1:
                end = parent.end
            else:
                end = parent.start + timedelta(seconds=total_seconds * cumulative / total_years)
            out.append(SubPeriod(sub_lord, cursor, end, share))
            cursor = end
        return out

    def calculate_antardasha(self, mahadasha: MahadashaPeriod, target_date: datetime) -> AntardashaPeriod:
        """Locate the Antardasha of ``mahadasha`` containing ``target_date``."""
        if not isinstance(mahadasha, MahadashaPeriod):
            raise ValidationError("Invalid mahadasha: must be a MahadashaPeriod")
        target = ensure_datetime(target_date, "target date")
        if mahadasha.end <= mahadasha.start:
            raise ValidationError(f"Invalid mahadasha duration for {mahadasha.planet}: must be positive")
        if not mahadasha.start <= target < mahadasha.end:
            raise ValidationError(
                f"Invalid target date: {isoformat_utc(target)} is outside the {mahadasha.planet} mahadasha "
                f"({isoformat_utc(mahadasha.start)} to {isoformat_utc(mahadasha.end)})"
            )

        for sub in self._cached_sub_periods(mahadasha):
            if sub.start <= target < sub.end:
                progress = (target - sub.start).total_seconds() / (sub.end - sub.start).total_seconds()
                result = AntardashaPeriod(mahadasha, sub.lord, sub.start, sub.end, progress)
                break
        else:
            raise CalculationError(f"No antardasha found for {isoformat_utc(target)} in the {mahadasha.planet} mahadasha")
        return result

    def _cached_sub_periods(self, mahadasha: MahadashaPeriod) -> List[SubPeriod]:
        key = (mahadasha.planet, mahadasha.type, mahadasha.start, mahadasha.end)
        if self._cache is not None:
            with self._lock:
                cached = self._cache.get(key)
            if cached is not None:
                return cached

        subs = self.calculate_sub_periods(mahadasha)
        if self._cache is not None:
            with self._lock:
                self._cache[key] = subs
        return subs

    # ------------------------- Timeline -------------------------

    def _timeline_entry(self, lord: str, level: int, start: datetime, end: datetime, at_dt: Optional[datetime]) -> Dict[str, object]:
        entry: Dict[str, object] = {
            "lord": lord,
            "level": level,
            "start": isoformat_utc(start),
            "end": isoformat_utc(end),
            "durationDays": (end - start).total_seconds() / 86400.0,
            "yearsShare": self.table.years_for(lord),
        }
        if at_dt is not None:
            entry["active"] = bool(start <= at_dt < end)
        return entry

    def _attach_children(self, node, parent, level, depth, visible_start, visible_end, at_dt) -> None:
        if level > depth:
            return
        children = []
        for sub in self.calculate_sub_periods(parent):
            if not _overlaps(sub.start, sub.end, visible_start, visible_end):
                continue
            s, e = _trim_to_window(sub.start, sub.end, visible_start, visible_end)
            entry = self._timeline_entry(sub.lord, level, s, e, at_dt)
            self._attach_children(entry, sub, level + 1, depth, visible_start, visible_end, at_dt)
            children.append(entry)
        if children:
            node["antardasha" if level == 2 else "pratyantardasha"] = children

    def build_timeline(
        self,
        birth_date: datetime,
        balance: Union[DashaBalance, Mapping],
        *,
        depth: int = 3,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        at_date: Optional[datetime] = None,
    ) -> Tuple[List[Dict[str, object]], Dict[str, object]]:
        """
        Nested Vimshottari timeline up to depth 3.

        - depth: 1 Mahadasha, 2 adds Antardasha, 3 adds Pratyantardasha
        - from_date/to_date: window to emit. Defaults: [birth, end of first cycle]
        - at_date: mark active periods

        Periods are subdivided over their full span and then clipped to the
        window, so a clipped entry keeps its canonical boundaries.
        """
        depth = min(max(depth, 1), 3)
        birth = ensure_datetime(birth_date, "birth date")
        window_start = ensure_datetime(from_date, "from date") if from_date is not None else birth
        at_dt = ensure_datetime(at_date, "at date") if at_date is not None else None

        periods = self.generate_mahadashas(birth, balance)
        window_end = ensure_datetime(to_date, "to date") if to_date is not None else periods[-1].end
        if window_end <= window_start:
            raise ValidationError("Invalid window: toDate must be after fromDate")

        # Extend by whole cycles until the window is covered
        cycles = 1
        while periods[-1].end < window_end:
            cycles += 1
            periods = self.generate_mahadashas(birth, balance, cycles=cycles)

        timeline: List[Dict[str, object]] = []
        for period in periods:
            if not _overlaps(period.start, period.end, window_start, window_end):
                continue
            s, e = _trim_to_window(period.start, period.end, window_start, window_end)
            node = self._timeline_entry(period.planet, 1, s, e, at_dt)
            node["type"] = period.type
            if depth >= 2:
                self._attach_children(node, period, 2, depth, window_start, window_end, at_dt)
            timeline.append(node)

        metadata = {
            "system": "vimshottari",
            "depth": depth,
            "fromDate": isoformat_utc(window_start),
            "toDate": isoformat_utc(window_end),
            "balance": self._check_balance(balance).model_dump(),
        }
        return timeline, metadata

    # ------------------------- Effects -------------------------

    def get_dasha_effects(self, planet: str) -> Dict[str, object]:
        """Interpretive summary for a period lord; unknown lords get a generic entry."""
        key = planet.strip().upper() if isinstance(planet, str) else planet
        effects = self.effects.get(key, DEFAULT_DASHA_EFFECTS)
        return {
            "general": effects["general"],
            "positive": effects["positive"],
            "negative": effects["negative"],
            "remedies": list(effects["remedies"]),
        }
