import logging
import math
from datetime import datetime, timezone, timedelta
from typing import Optional, Tuple

import pytz
from timezonefinder import TimezoneFinder

from .constants import (
    DASHA_LORDS,
    LAHIRI_BASE_VALUE_DEG,
    LAHIRI_BASE_YEAR,
    NAKSHATRA_NAMES,
    NAKSHATRA_SPAN_DEG,
    PADA_SPAN_DEG,
    PRECESSION_ARCSEC_PER_YEAR,
)
from .errors import ValidationError

logger = logging.getLogger(__name__)

# Initialize timezone finder (expensive operation, so do it once)
_tf = TimezoneFinder()


# ------------------------- Angles -------------------------

def normalize_angle(x: float) -> float:
    """Normalize an angle to the [0, 360) range.

    Raises ValidationError for NaN or infinite input.
    """
    if isinstance(x, bool) or not isinstance(x, (int, float)) or not math.isfinite(x):
        raise ValidationError(f"Invalid angle: must be a finite number, got {x!r}")
    lon = float(x) % 360.0
    # -1e-15 % 360.0 rounds to 360.0
    if lon >= 360.0:
        lon = 0.0
    return lon


def angular_separation(lon1: float, lon2: float) -> float:
    """Smallest angle between two longitudes, in [0, 180]."""
    diff = abs(normalize_angle(lon1) - normalize_angle(lon2))
    return min(diff, 360.0 - diff)


def sign_index(longitude: float) -> int:
    """Get zodiac sign index (0-11) from longitude"""
    return int(normalize_angle(longitude) // 30.0)


def compute_whole_sign_cusps(asc_sign: int):
    """Compute whole sign house cusps"""
    return [normalize_angle(asc_sign * 30 + i * 30) for i in range(12)]


def compute_equal_cusps(asc: float):
    """Equal houses of 30° starting at the ascendant degree"""
    return [normalize_angle(asc + i * 30) for i in range(12)]


# ------------------------- Time -------------------------

def julian_day(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: float = 0) -> float:
    """Proleptic Gregorian calendar date to Julian Day (Meeus, ch. 7)."""
    for name, value in (("year", year), ("month", month), ("day", day),
                        ("hour", hour), ("minute", minute), ("second", second)):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"Invalid {name}: must be a finite number, got {value!r}")

    decimal_day = day + (hour + minute / 60.0 + second / 3600.0) / 24.0
    if month <= 2:
        year -= 1
        month += 12
    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)
    return math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + decimal_day + b - 1524.5


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def ensure_datetime(value, field: str) -> datetime:
    """Validate that ``value`` is a datetime and return it in UTC."""
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid {field}: must be a datetime, got {type(value).__name__}")
    return as_utc(value)


def julian_day_utc(dt_utc: datetime) -> float:
    """Convert UTC datetime to Julian Day"""
    dt_utc = as_utc(dt_utc)
    second = dt_utc.second + dt_utc.microsecond / 1e6
    return julian_day(dt_utc.year, dt_utc.month, dt_utc.day, dt_utc.hour, dt_utc.minute, second)


def lahiri_ayanamsa(year: float) -> float:
    """Lahiri ayanamsa for a calendar year using a linear precession model."""
    if isinstance(year, bool) or not isinstance(year, (int, float)) or not math.isfinite(year):
        raise ValidationError(f"Invalid year: must be a finite number, got {year!r}")
    return LAHIRI_BASE_VALUE_DEG + (year - LAHIRI_BASE_YEAR) * PRECESSION_ARCSEC_PER_YEAR / 3600.0


def detect_timezone_from_coordinates(latitude: float, longitude: float) -> str:
    """Detect timezone from latitude and longitude coordinates using timezonefinder library"""
    detected_tz = _tf.timezone_at(lat=latitude, lng=longitude)
    if detected_tz is None:
        # Open ocean and polar coordinates have no named zone
        logger.warning(f"No timezone found for ({latitude:.2f}, {longitude:.2f}), using UTC")
        return "UTC"
    return detected_tz


def to_utc(dt_iso: str, tz: Optional[str], offset_minutes: Optional[int], latitude: Optional[float] = None, longitude: Optional[float] = None) -> datetime:
    """Convert ISO datetime string to UTC datetime, treating input as local time"""
    try:
        naive = datetime.fromisoformat(dt_iso.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid datetime: {dt_iso!r} is not ISO-8601") from e
    if naive.tzinfo is not None:
        return naive.astimezone(timezone.utc)

    # If timezone is explicitly provided, use it
    if tz:
        try:
            tz_obj = pytz.timezone(tz)
        except pytz.UnknownTimeZoneError as e:
            raise ValidationError(f"Invalid timezone: {tz}") from e
        return tz_obj.localize(naive).astimezone(pytz.UTC)

    # If offset is explicitly provided, use it
    if offset_minutes is not None:
        return naive.replace(tzinfo=timezone(timedelta(minutes=offset_minutes))).astimezone(timezone.utc)

    # If coordinates are provided, detect timezone automatically
    if latitude is not None and longitude is not None:
        detected_tz = detect_timezone_from_coordinates(latitude, longitude)
        tz_obj = pytz.timezone(detected_tz)
        return tz_obj.localize(naive).astimezone(pytz.UTC)

    # Default: treat as UTC (fallback)
    return naive.replace(tzinfo=timezone.utc)


# ------------------------- Nakshatras -------------------------

def get_nakshatra_and_pada(longitude_sidereal: float) -> Tuple[str, int, int]:
    """Return (nakshatra_name, nakshatra_index_1based, pada_1to4) from sidereal longitude."""
    lon = normalize_angle(longitude_sidereal)
    nak_index_0 = min(int(lon // NAKSHATRA_SPAN_DEG), 26)
    within_nak = lon - nak_index_0 * NAKSHATRA_SPAN_DEG
    pada_1to4 = min(int(max(within_nak, 0.0) // PADA_SPAN_DEG), 3) + 1
    return NAKSHATRA_NAMES[nak_index_0], nak_index_0 + 1, pada_1to4


def nakshatra_descriptor(longitude_sidereal: float) -> "MoonNakshatra":
    """Build the full nakshatra descriptor for a sidereal longitude.

    The lord follows the Vimshottari order repeated three times around the
    zodiac, so Ashwini, Magha and Mula are all ruled by Ketu.
    """
    from .models import MoonNakshatra

    lon = normalize_angle(longitude_sidereal)
    name, index, pada = get_nakshatra_and_pada(lon)
    elapsed = lon - (index - 1) * NAKSHATRA_SPAN_DEG
    # Clamp float residue at the upper edge of the span
    elapsed = min(max(elapsed, 0.0), math.nextafter(NAKSHATRA_SPAN_DEG, 0.0))
    return MoonNakshatra(
        longitude=lon,
        index=index,
        name=name,
        pada=pada,
        lord=DASHA_LORDS[(index - 1) % 9],
        degrees_elapsed=elapsed,
        degrees_remaining=NAKSHATRA_SPAN_DEG - elapsed,
    )


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    """ISO 8601 string in UTC with a trailing Z."""
    if dt is None:
        return None
    return as_utc(dt).isoformat().replace("+00:00", "Z")
