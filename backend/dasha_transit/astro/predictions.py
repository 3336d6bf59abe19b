import logging
import math
from collections.abc import Mapping
from typing import Dict, List, Optional, Sequence, Tuple

from .constants import (
    HOUSE_SIGNIFICATIONS,
    MAJOR_TRANSIT_FAVORABLE_HOUSES,
    MAJOR_TRANSIT_PLANETS,
    MOON_FAVORABLE_HOUSES,
)
from .errors import ValidationError
from .models import HouseCusps, Prediction

logger = logging.getLogger(__name__)


class PredictionEngine:
    """House-indexed observations for transiting planets.

    ``significations`` maps a house number to ``(area, description)`` and
    defaults to the classical house meanings.
    """

    def __init__(
        self,
        house_cusps: Sequence[float],
        significations: Optional[Dict[int, Tuple[str, str]]] = None,
    ):
        self.house_cusps = HouseCusps._coerce(house_cusps)
        self.significations = significations if significations is not None else HOUSE_SIGNIFICATIONS

    def get_house_from_longitude(self, longitude: float, house_cusps: Optional[Sequence[float]] = None) -> int:
        """
        House (1-12) whose cusp-to-next-cusp arc contains ``longitude``.

        A longitude exactly on a cusp belongs to the house that cusp opens;
        the 12th house arc wraps through 0°.
        """
        cusps = self.house_cusps if house_cusps is None else HouseCusps._coerce(house_cusps)
        if isinstance(longitude, bool) or not isinstance(longitude, (int, float)) or not math.isfinite(longitude):
            raise ValidationError(f"Invalid longitude: must be a finite number, got {longitude!r}")
        if not 0.0 <= longitude < 360.0:
            raise ValidationError(f"Invalid longitude: must be in [0, 360), got {longitude}")

        # One ulp below a cusp the modulo can round onto the arc end, so no
        # arc matches; the house whose cusp lies nearest behind wins then
        nearest, nearest_offset = 1, 360.0
        for house in range(1, 13):
            start, end = cusps.arc(house)
            span = (end - start) % 360.0
            offset = (longitude - start) % 360.0
            if offset < span:
                return house
            if offset < nearest_offset:
                nearest, nearest_offset = house, offset
        return nearest

    def _signification(self, house: int) -> Tuple[str, str]:
        return self.significations.get(house, ("General", "general life matters"))

    def generate_daily_predictions(self, transit_positions: Mapping) -> List[Prediction]:
        """Observations driven by the transiting Moon's house."""
        if "MOON" not in transit_positions:
            raise ValidationError("Invalid transit positions: MOON is required for daily predictions")
        house = self.get_house_from_longitude(transit_positions["MOON"])
        area, description = self._signification(house)
        supportive = house in MOON_FAVORABLE_HOUSES

        predictions = [
            Prediction(
                type="DAILY",
                planet="MOON",
                house=house,
                area=area,
                description=f"Moon transits house {house}, bringing focus to {description}",
                timing="Today",
                confidence=0.7 if supportive else 0.5,
            ),
            Prediction(
                type="DAILY",
                planet="MOON",
                house=house,
                area="Mood",
                description=(
                    "Emotional tone is steady and supportive"
                    if supportive
                    else "Emotional tone may fluctuate; avoid hasty decisions"
                ),
                timing="Today",
                confidence=0.6 if supportive else 0.4,
            ),
        ]
        logger.debug(f"Daily predictions: Moon in house {house}")
        return predictions

    def generate_major_transit_predictions(self, transit_positions: Mapping) -> List[Prediction]:
        """One prediction per slow-moving significator present in the input."""
        predictions = []
        for planet, timing in MAJOR_TRANSIT_PLANETS.items():
            if planet not in transit_positions:
                continue
            house = self.get_house_from_longitude(transit_positions[planet])
            area, description = self._signification(house)
            favorable = house in MAJOR_TRANSIT_FAVORABLE_HOUSES.get(planet, set())
            tone = "supports growth in" if favorable else "asks for patience with"
            predictions.append(Prediction(
                type="MAJOR",
                planet=planet,
                house=house,
                area=area,
                description=f"{planet.title()} in house {house} {tone} {description}",
                timing=timing,
                confidence=0.8 if favorable else 0.6,
            ))
        return predictions
