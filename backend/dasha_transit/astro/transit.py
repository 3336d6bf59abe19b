import logging
import math
from collections.abc import Mapping
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from .constants import ASPECT_ANGLES, MAX_ASPECT_ITERATIONS, NO_ASPECT
from .errors import CalculationError, DashaTransitError, ValidationError
from .models import AspectOrbs, PlanetPosition, TransitAspect
from .utils import angular_separation, ensure_datetime, julian_day_utc, lahiri_ayanamsa, normalize_angle

logger = logging.getLogger(__name__)

PositionProvider = Callable[[float], Mapping]
Ayanamsa = Callable[[float], float]


def _longitude_of(value: Union[PlanetPosition, float], label: str) -> float:
    if isinstance(value, PlanetPosition):
        return value.longitude
    if isinstance(value, Mapping) and "longitude" in value:
        value = value["longitude"]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"Invalid longitude for {label}: must be a finite number, got {value!r}")
    if not 0.0 <= value < 360.0:
        raise ValidationError(f"Invalid longitude for {label}: must be in [0, 360), got {value}")
    return float(value)


class TransitCalculator:
    """
    Sidereal transit positions and natal-to-transit aspects.

    Collaborators:
    - position_provider: ``(julian_day) -> {planet: tropical longitude}``
    - ayanamsa: ``(year) -> degrees`` subtracted to obtain sidereal longitudes
    - orbs: maximum deviation per aspect
    """

    def __init__(
        self,
        position_provider: PositionProvider,
        ayanamsa: Optional[Ayanamsa] = None,
        orbs: Optional[AspectOrbs] = None,
        max_iterations: int = MAX_ASPECT_ITERATIONS,
    ):
        if not callable(position_provider):
            raise ValidationError("position_provider must be callable")
        self.position_provider = position_provider
        self.ayanamsa = ayanamsa if ayanamsa is not None else lahiri_ayanamsa
        self.orbs = orbs if orbs is not None else AspectOrbs()
        self.max_iterations = max_iterations

    def calculate_transit_positions(self, date: datetime) -> Dict[str, float]:
        """Sidereal longitudes of the transiting planets at ``date``.

        The lunar nodes are returned exactly 180° apart: Ketu is rebuilt
        from Rahu whenever Rahu is present.
        """
        date_utc = ensure_datetime(date, "date")
        jd = julian_day_utc(date_utc)
        try:
            tropical = self.position_provider(jd)
        except DashaTransitError:
            raise
        except Exception as e:
            raise CalculationError(f"Position provider failed for JD {jd:.5f}: {e}") from e
        if not isinstance(tropical, Mapping):
            raise CalculationError(f"Position provider returned {type(tropical).__name__}, expected a mapping")

        offset = self.ayanamsa(date_utc.year)
        positions: Dict[str, float] = {}
        for planet, longitude in tropical.items():
            if isinstance(longitude, bool) or not isinstance(longitude, (int, float)) or not math.isfinite(longitude):
                raise CalculationError(f"Position provider returned a non-finite longitude for {planet}: {longitude!r}")
            positions[str(planet).upper()] = normalize_angle(longitude - offset)

        if "RAHU" in positions:
            positions["KETU"] = normalize_angle(positions["RAHU"] + 180.0)
        elif "KETU" in positions:
            positions["RAHU"] = normalize_angle(positions["KETU"] + 180.0)

        logger.debug(f"Transit positions for JD {jd:.5f} (ayanamsa {offset:.4f}°): {len(positions)} planets")
        return positions

    def calculate_transit_aspect(self, longitude1: float, longitude2: float) -> str:
        """Aspect formed by two longitudes, or NO_ASPECT.

        Aspects are tried in the order conjunction, sextile, square, trine,
        opposition and the first one within its orb wins.
        """
        separation = angular_separation(longitude1, longitude2)
        for aspect, angle in ASPECT_ANGLES.items():
            if abs(separation - angle) <= self.orbs.orb_for(aspect):
                return aspect
        return NO_ASPECT

    def calculate_aspect_orb(self, longitude1: float, longitude2: float, aspect: str) -> float:
        if aspect not in ASPECT_ANGLES:
            raise ValidationError(f"Invalid aspect: {aspect!r}")
        return abs(angular_separation(longitude1, longitude2) - ASPECT_ANGLES[aspect])

    def calculate_aspect_strength(self, aspect: str, orb: float) -> float:
        """1.0 for an exact aspect, falling linearly to 0 at the orb limit."""
        max_orb = self.orbs.orb_for(aspect)
        if max_orb <= 0 or not math.isfinite(orb) or orb < 0:
            return 0.0
        return max(0.0, (max_orb - orb) / max_orb)

    def calculate_transit_aspects(
        self,
        natal_positions: Mapping,
        transit_positions: Mapping,
    ) -> List[TransitAspect]:
        """Every natal x transit pair that forms an aspect."""
        if not isinstance(natal_positions, Mapping) or not isinstance(transit_positions, Mapping):
            raise ValidationError("Invalid positions: natal and transit positions must be mappings")
        pairs = len(natal_positions) * len(transit_positions)
        if pairs > self.max_iterations:
            raise ValidationError(
                f"Too many planet pairs: {pairs} exceeds the limit of {self.max_iterations}"
            )

        natal = {name: _longitude_of(pos, f"natal {name}") for name, pos in natal_positions.items()}
        transit = {name: _longitude_of(pos, f"transit {name}") for name, pos in transit_positions.items()}

        aspects: List[TransitAspect] = []
        for natal_planet, natal_lon in natal.items():
            for transit_planet, transit_lon in transit.items():
                aspect = self.calculate_transit_aspect(natal_lon, transit_lon)
                if aspect == NO_ASPECT:
                    continue
                orb = self.calculate_aspect_orb(natal_lon, transit_lon, aspect)
                aspects.append(TransitAspect(
                    natal_planet=natal_planet,
                    transit_planet=transit_planet,
                    aspect=aspect,
                    orb=orb,
                    strength=self.calculate_aspect_strength(aspect, orb),
                ))
        return aspects
