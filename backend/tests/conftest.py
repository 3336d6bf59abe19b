"""
Shared fixtures: a deterministic position provider and a sample birth chart.

The fixed provider returns the same tropical longitudes for every instant and
the zero ayanamsa leaves them unchanged, so expected houses and aspects can be
worked out by hand.
"""
from datetime import datetime, timezone

import pytest

from dasha_transit import create_app
from dasha_transit.astro.analysis import DashaTransitCalculator
from dasha_transit.astro.models import BirthChart
from dasha_transit.config import Config


TRANSIT_LONGITUDES = {
    "SUN": 40.0,
    "MOON": 100.0,
    "MARS": 200.0,
    "MERCURY": 50.0,
    "JUPITER": 250.0,
    "VENUS": 10.0,
    "SATURN": 300.0,
    "RAHU": 15.0,
    "KETU": 195.0,
}

NATAL_LONGITUDES = {
    "SUN": 45.0,
    "MOON": 0.0,
    "MARS": 120.0,
    "MERCURY": 60.0,
    "JUPITER": 200.0,
    "VENUS": 30.0,
    "SATURN": 280.0,
    "RAHU": 90.0,
    "KETU": 270.0,
}

EQUAL_CUSPS = [i * 30.0 for i in range(12)]


class FixedProvider:
    """Returns the same tropical longitudes for every Julian Day."""

    def __init__(self, longitudes=None):
        self.longitudes = dict(longitudes or TRANSIT_LONGITUDES)
        self.calls = []

    def __call__(self, jd):
        self.calls.append(jd)
        return dict(self.longitudes)


class FailingProvider:
    def __call__(self, jd):
        raise OSError("ephemeris file missing")


def zero_ayanamsa(year):
    return 0.0


@pytest.fixture
def provider():
    return FixedProvider()


@pytest.fixture
def calculator(provider):
    return DashaTransitCalculator(provider, ayanamsa=zero_ayanamsa)


@pytest.fixture
def birth_date():
    return datetime(1990, 5, 15, tzinfo=timezone.utc)


@pytest.fixture
def chart_data(birth_date):
    """Aries ascendant, Moon at 0° Ashwini: Ketu balance of the full 7 years"""
    return {
        "birth_datetime": birth_date,
        "latitude": 18.5204,
        "longitude": 73.8567,
        "planets": {name: {"longitude": lon} for name, lon in NATAL_LONGITUDES.items()},
        "house_cusps": EQUAL_CUSPS,
        "ascendant": 0.0,
        "moon_nakshatra": {
            "longitude": 0.0,
            "index": 1,
            "name": "Ashwini",
            "pada": 1,
            "lord": "KETU",
            "degrees_elapsed": 0.0,
        },
        "dasha_balance": {"lord": "KETU", "years": 7.0, "days": 7.0 * 365.25},
    }


@pytest.fixture
def chart(chart_data):
    return BirthChart.model_validate(chart_data)


@pytest.fixture
def app(provider):
    """Create test app instance with a deterministic ephemeris"""
    app = create_app(position_provider=provider, ayanamsa=zero_ayanamsa, config=Config({}))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()
