"""Vimshottari dasha & transit calculation engine."""

from .analysis import DashaTransitCalculator
from .dasha import DashaCalculator
from .engine import SwissEphemerisProvider, swisseph_ayanamsa
from .errors import CalculationError, DashaTransitError, ValidationError
from .models import AspectOrbs, BirthChart, HouseCusps, VimshottariTable
from .period_analyzer import PeriodAnalyzer
from .predictions import PredictionEngine
from .transit import TransitCalculator
from .utils import julian_day, lahiri_ayanamsa, nakshatra_descriptor, normalize_angle

__all__ = [
    "AspectOrbs",
    "BirthChart",
    "CalculationError",
    "DashaCalculator",
    "DashaTransitCalculator",
    "DashaTransitError",
    "HouseCusps",
    "PeriodAnalyzer",
    "PredictionEngine",
    "SwissEphemerisProvider",
    "TransitCalculator",
    "ValidationError",
    "VimshottariTable",
    "julian_day",
    "lahiri_ayanamsa",
    "nakshatra_descriptor",
    "normalize_angle",
    "swisseph_ayanamsa",
]
