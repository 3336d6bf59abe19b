import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from .constants import (
    ANTARDASHA_WEIGHT,
    BASELINE_STRENGTH,
    DASHA_EFFECTS,
    DEFAULT_DASHA_EFFECTS,
    FUNCTIONAL_NATURE,
    MAHADASHA_WEIGHT,
    ZODIAC_SIGNS,
)
from .errors import ValidationError
from .models import BirthChart, CurrentDasha, PeriodStrength, PeriodWindow, coerce_model
from .utils import ensure_datetime

logger = logging.getLogger(__name__)

Classifier = Callable[[int], Dict[str, Set[str]]]
RemedyLookup = Callable[[str], List[str]]

FAVORABLE = "favorable"
MALEFIC = "malefic"
NEUTRAL = "neutral"


def functional_nature(ascendant_sign: int) -> Dict[str, Set[str]]:
    """Functional benefics and malefics for an ascendant sign (0=Aries)."""
    if ascendant_sign not in FUNCTIONAL_NATURE:
        raise ValidationError(f"Invalid ascendant sign: must be 0-11, got {ascendant_sign!r}")
    favorable, malefic = FUNCTIONAL_NATURE[ascendant_sign]
    return {"favorable": set(favorable), "malefic": set(malefic)}


def dasha_remedies(planet: str) -> List[str]:
    return list(DASHA_EFFECTS.get(planet, DEFAULT_DASHA_EFFECTS)["remedies"])


class PeriodAnalyzer:
    """Rates the active dasha lords against the chart's ascendant."""

    def __init__(self, classifier: Optional[Classifier] = None, remedies: Optional[RemedyLookup] = None):
        self.classifier = classifier if classifier is not None else functional_nature
        self.remedies = remedies if remedies is not None else dasha_remedies

    def _nature(self, chart: BirthChart) -> Dict[str, Set[str]]:
        nature = self.classifier(chart.ascendant_sign)
        return {"favorable": set(nature.get("favorable", ())), "malefic": set(nature.get("malefic", ()))}

    @staticmethod
    def _status(planet: str, nature: Dict[str, Set[str]]) -> str:
        if planet in nature["favorable"]:
            return FAVORABLE
        if planet in nature["malefic"]:
            return MALEFIC
        return NEUTRAL

    @staticmethod
    def _active_lords(current_dasha: CurrentDasha):
        yield "MAHADASHA", current_dasha.mahadasha.planet, current_dasha.mahadasha.start, current_dasha.mahadasha.end
        ad = current_dasha.antardasha
        yield "ANTARDASHA", ad.planet, ad.start, ad.end

    def _windows(self, chart, date, current_dasha, wanted: str) -> List[PeriodWindow]:
        chart = coerce_model(BirthChart, chart, "birth chart")
        ensure_datetime(date, "date")
        if current_dasha is None:
            return []

        nature = self._nature(chart)
        sign = ZODIAC_SIGNS[chart.ascendant_sign]
        windows = []
        for level, planet, start, end in self._active_lords(current_dasha):
            if self._status(planet, nature) != wanted:
                continue
            if wanted == FAVORABLE:
                reason = f"{planet.title()} {level.lower()} is a functional benefic for {sign} ascendant"
                windows.append(PeriodWindow(level, planet, start, end, reason))
            else:
                reason = f"{planet.title()} {level.lower()} is a functional malefic for {sign} ascendant"
                windows.append(PeriodWindow(level, planet, start, end, reason, self.remedies(planet)))
        return windows

    def identify_favorable_periods(self, chart, date: datetime, current_dasha: Optional[CurrentDasha]) -> List[PeriodWindow]:
        return self._windows(chart, date, current_dasha, FAVORABLE)

    def identify_challenging_periods(self, chart, date: datetime, current_dasha: Optional[CurrentDasha]) -> List[PeriodWindow]:
        """Active periods ruled by a functional malefic, with remedies attached."""
        return self._windows(chart, date, current_dasha, MALEFIC)

    def analyze_period_strength(
        self,
        chart,
        transit_positions: Mapping,
        current_dasha: Optional[CurrentDasha],
    ) -> PeriodStrength:
        """
        Overall 0-1 strength of the running periods.

        Starts from 0.5; the Mahadasha lord moves it by 0.2 and the
        Antardasha lord by 0.1, up for a functional benefic and down for a
        functional malefic.
        """
        chart = coerce_model(BirthChart, chart, "birth chart")
        if not isinstance(transit_positions, Mapping):
            raise ValidationError("Invalid transit positions: must be a mapping")

        score = BASELINE_STRENGTH
        influence: Dict[str, object] = {}
        if current_dasha is not None:
            nature = self._nature(chart)
            weights = {"MAHADASHA": MAHADASHA_WEIGHT, "ANTARDASHA": ANTARDASHA_WEIGHT}
            for level, planet, _, _ in self._active_lords(current_dasha):
                status = self._status(planet, nature)
                if status == FAVORABLE:
                    score += weights[level]
                elif status == MALEFIC:
                    score -= weights[level]
                influence[level.lower()] = {
                    "planet": planet,
                    "status": status,
                    "transitLongitude": transit_positions.get(planet),
                }
        score = round(min(max(score, 0.0), 1.0), 6)

        if score > 0.7:
            recommendations = [
                "Favorable period for new initiatives",
                "Pursue long-term goals with confidence",
            ]
        elif score >= 0.4:
            recommendations = [
                "Moderate period; maintain steady effort",
                "Consolidate existing commitments before starting new ones",
            ]
        else:
            recommendations = [
                "Challenging period; avoid major risks",
                "Focus on remedies and patience",
            ]
            if current_dasha is not None:
                recommendations.extend(self.remedies(current_dasha.mahadasha.planet)[:1])

        logger.debug(f"Period strength {score:.2f}")
        return PeriodStrength(overall_strength=score, dasha_influence=influence, recommendations=recommendations)
