"""
Dasha & transit orchestrator.

Composes the dasha calculator, transit calculator, prediction engine and
period analyzer into one ``DashaTransitAnalysis`` for a (chart, date) pair.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from .dasha import DEFAULT_CACHE_SIZE, DashaCalculator
from .errors import CalculationError, DashaTransitError
from .models import (
    AspectOrbs,
    BirthChart,
    CurrentDasha,
    DashaTransitAnalysis,
    PeriodAnalysis,
    TimingAnalysis,
    TransitSnapshot,
    VimshottariTable,
    coerce_model,
)
from .period_analyzer import Classifier, PeriodAnalyzer, RemedyLookup
from .predictions import PredictionEngine
from .transit import Ayanamsa, PositionProvider, TransitCalculator
from .utils import ensure_datetime, isoformat_utc

logger = logging.getLogger(__name__)


@contextmanager
def stage(label: str):
    """Re-raise failures as ``<label> failed: ...`` keeping the error class."""
    try:
        yield
    except DashaTransitError as e:
        logger.error(f"{label} failed: {e}")
        raise type(e)(f"{label} failed: {e}") from e
    except (TypeError, ValueError, ArithmeticError, KeyError) as e:
        logger.error(f"{label} failed: {e}", exc_info=True)
        raise CalculationError(f"{label} failed: {e}") from e


class DashaTransitCalculator:
    """Entry point for timing analyses of a birth chart."""

    def __init__(
        self,
        position_provider: PositionProvider,
        ayanamsa: Optional[Ayanamsa] = None,
        table: Optional[VimshottariTable] = None,
        orbs: Optional[AspectOrbs] = None,
        classifier: Optional[Classifier] = None,
        remedies: Optional[RemedyLookup] = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        self.dasha_calculator = DashaCalculator(table=table, cache_size=cache_size)
        self.transit_calculator = TransitCalculator(position_provider, ayanamsa=ayanamsa, orbs=orbs)
        self.period_analyzer = PeriodAnalyzer(classifier=classifier, remedies=remedies)

    def _current_dasha(self, chart: BirthChart, date: datetime) -> Optional[CurrentDasha]:
        return self.dasha_calculator.get_current_dasha(chart.birth_utc, date, chart.dasha_balance)

    def _period_analysis(self, chart, date, transit_positions, current_dasha) -> PeriodAnalysis:
        analyzer = self.period_analyzer
        return PeriodAnalysis(
            favorable_periods=analyzer.identify_favorable_periods(chart, date, current_dasha),
            challenging_periods=analyzer.identify_challenging_periods(chart, date, current_dasha),
            strength=analyzer.analyze_period_strength(chart, transit_positions, current_dasha),
        )

    def calculate_dasha_transits(self, chart, analysis_date: Optional[datetime] = None) -> DashaTransitAnalysis:
        """
        Full timing analysis of ``chart`` at ``analysis_date`` (default: now).

        Raises:
            ValidationError: Malformed chart or date, with the failing stage named
            CalculationError: Internal failure in any stage
        """
        with stage("Dasha & Transit calculation"):
            chart = coerce_model(BirthChart, chart, "birth chart")
            date = ensure_datetime(analysis_date, "analysis date") if analysis_date is not None else datetime.now(timezone.utc)

        logger.info(f"Calculating dasha & transits for {isoformat_utc(date)}")

        with stage("Dasha calculation"):
            current_dasha = self._current_dasha(chart, date)
        with stage("Transit calculation"):
            transit_positions = self.transit_calculator.calculate_transit_positions(date)
            transit_aspects = self.transit_calculator.calculate_transit_aspects(chart.planets, transit_positions)
        with stage("Prediction calculation"):
            engine = PredictionEngine(chart.house_cusps)
            predictions = {
                "daily": engine.generate_daily_predictions(transit_positions),
                "major": engine.generate_major_transit_predictions(transit_positions),
            }
        with stage("Period analysis calculation"):
            period_analysis = self._period_analysis(chart, date, transit_positions, current_dasha)

        def get_dasha_for_date(other: datetime) -> Optional[CurrentDasha]:
            with stage("Dasha calculation"):
                return self._current_dasha(chart, ensure_datetime(other, "target date"))

        def get_transits_for_date(other: datetime) -> TransitSnapshot:
            with stage("Transit calculation"):
                other = ensure_datetime(other, "target date")
                positions = self.transit_calculator.calculate_transit_positions(other)
                aspects = self.transit_calculator.calculate_transit_aspects(chart.planets, positions)
                return TransitSnapshot(date=other, positions=positions, aspects=aspects)

        return DashaTransitAnalysis(
            current_dasha=current_dasha,
            transit_positions=transit_positions,
            transit_aspects=transit_aspects,
            predictions=predictions,
            period_analysis=period_analysis,
            analysis_date=date,
            get_dasha_for_date=get_dasha_for_date,
            get_transits_for_date=get_transits_for_date,
        )

    def generate_timing_analysis(self, chart, future_date: datetime) -> TimingAnalysis:
        """Dasha, transits, predictions and period analysis for a single future date."""
        with stage("Timing analysis generation"):
            chart = coerce_model(BirthChart, chart, "birth chart")
            date = ensure_datetime(future_date, "future date")
            current_dasha = self._current_dasha(chart, date)
            positions = self.transit_calculator.calculate_transit_positions(date)
            aspects = self.transit_calculator.calculate_transit_aspects(chart.planets, positions)
            engine = PredictionEngine(chart.house_cusps)
            predictions = {
                "daily": engine.generate_daily_predictions(positions),
                "major": engine.generate_major_transit_predictions(positions),
            }
            return TimingAnalysis(
                date=date,
                dasha=current_dasha,
                transits=positions,
                aspects=aspects,
                predictions=predictions,
                period_analysis=self._period_analysis(chart, date, positions, current_dasha),
            )
