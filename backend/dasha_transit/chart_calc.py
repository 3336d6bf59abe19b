"""
Natal chart construction for the dasha/transit engine.

Used by:
- routes.py: every endpoint that takes birth data
"""

import logging
from typing import Optional

from .astro.analysis import DashaTransitCalculator
from .astro.engine import ascendant_and_houses
from .astro.errors import CalculationError
from .astro.models import BirthChart, HouseCusps, PlanetPosition
from .astro.predictions import PredictionEngine
from .astro.utils import julian_day_utc, nakshatra_descriptor, to_utc

logger = logging.getLogger(__name__)


def build_birth_chart(
    dt_iso: str,
    latitude: float,
    longitude: float,
    calculator: DashaTransitCalculator,
    *,
    tz: Optional[str] = None,
    utc_offset_minutes: Optional[int] = None,
    house_system: str = "WHOLE_SIGN",
) -> BirthChart:
    """
    Calculate the natal chart for birth data.

    The local birth time is resolved with ``tz``, then ``utc_offset_minutes``,
    then the timezone at the coordinates. Planet positions come from the
    calculator's position provider and ayanamsa, so natal and transit
    longitudes share one zodiac.

    Raises:
        ValidationError: If the birth data is malformed
        CalculationError: If the ephemeris fails
    """
    dt_utc = to_utc(dt_iso, tz, utc_offset_minutes, latitude, longitude)
    jd_ut = julian_day_utc(dt_utc)
    transits = calculator.transit_calculator

    positions = transits.calculate_transit_positions(dt_utc)
    if "MOON" not in positions:
        raise CalculationError("Could not calculate Moon's position")
    ayanamsa_deg = transits.ayanamsa(dt_utc.year)
    asc_long, cusps, _ = ascendant_and_houses(jd_ut, latitude, longitude, house_system, ayanamsa_deg)
    house_cusps = HouseCusps(cusps)
    houses = PredictionEngine(house_cusps)

    # Speeds are only known when the provider exposes them
    speeds = {}
    provider = transits.position_provider
    if hasattr(provider, "compute"):
        speeds = {p["planet"]: p["speed"] for p in provider.compute(jd_ut)}

    planets = {}
    for name, lon in positions.items():
        planets[name] = PlanetPosition(
            longitude=lon,
            house=houses.get_house_from_longitude(lon),
            retrograde=name in ("RAHU", "KETU") or speeds.get(name, 0.0) < 0,
        )

    moon_nakshatra = nakshatra_descriptor(positions["MOON"])
    balance = calculator.dasha_calculator.calculate_dasha_balance(moon_nakshatra, dt_utc)

    logger.debug(
        f"Birth chart built: ASC={asc_long:.2f}°, Moon in {moon_nakshatra.name} pada {moon_nakshatra.pada}, "
        f"balance {balance.lord} {balance.years:.3f}y"
    )
    return BirthChart(
        birth_datetime=dt_utc,
        latitude=latitude,
        longitude=longitude,
        planets=planets,
        house_cusps=house_cusps,
        ascendant=asc_long,
        moon_nakshatra=moon_nakshatra,
        dasha_balance=balance,
    )


def chart_summary(chart: BirthChart, house_system: str) -> dict:
    """JSON summary of a natal chart, rounded for display"""
    moon = chart.moon_nakshatra
    return {
        "birthDatetimeUTC": chart.birth_utc.replace(tzinfo=None).isoformat(timespec="seconds") + "Z",
        "houseSystem": house_system,
        "ascendant": {"longitude": round(chart.ascendant_longitude, 2), "signIndex": chart.ascendant_sign},
        "houseCusps": [round(c, 2) for c in chart.house_cusps],
        "planets": [
            {
                "planet": name,
                "longitude": round(p.longitude, 2),
                "signIndex": p.sign,
                "house": p.house,
                "retrograde": p.retrograde,
            }
            for name, p in chart.planets.items()
        ],
        "moonNakshatra": {
            "name": moon.name,
            "index": moon.index,
            "pada": moon.pada,
            "lord": moon.lord,
            "degreesElapsed": round(moon.degrees_elapsed, 4),
        },
        "dashaBalance": {
            "lord": chart.dasha_balance.lord,
            "years": round(chart.dasha_balance.years, 4),
            "days": round(chart.dasha_balance.days, 2),
        },
    }
