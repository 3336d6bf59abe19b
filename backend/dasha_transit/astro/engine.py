import logging
import math
import os
import threading
from typing import Callable, Dict, List, Optional, Tuple

import swisseph as swe

from .constants import AYANAMSHA, AYANAMSHA_KEYS, HOUSE_CODES, NODE_TYPES, PLANET_BODIES, VEDANJANAM_OFFSET_DEG
from .errors import CalculationError, ValidationError
from .utils import compute_equal_cusps, compute_whole_sign_cusps, lahiri_ayanamsa, normalize_angle, sign_index

# Module-level logger
logger = logging.getLogger(__name__)

# Swiss Ephemeris keeps the ephemeris path and sidereal mode as process globals
_swe_lock = threading.Lock()

# JD of 2000-01-01 12:00 UT
J2000 = 2451545.0
DAYS_PER_JULIAN_YEAR = 365.25


class SwissEphemerisProvider:
    """
    Position provider backed by pyswisseph.

    Calling the provider with a Julian Day (UT) returns geocentric apparent
    tropical longitudes for the nine grahas. The sidereal correction is left
    to the caller so that any ayanamsa model can be applied on top.

    Configuration:
    - ephe_path: directory with Swiss Ephemeris data files; when omitted the
      built-in Moshier ephemeris is used (no data files needed)
    - node_type: "MEAN" for the mean lunar node (traditional Vedic), "TRUE"
      for the oscillating true node
    """

    def __init__(self, ephe_path: Optional[str] = None, node_type: str = "MEAN"):
        if node_type not in NODE_TYPES:
            raise ValidationError(f"node_type must be 'MEAN' or 'TRUE', got: {node_type}")
        if ephe_path and not os.path.isdir(ephe_path):
            raise ValidationError(f"Ephemeris path does not exist: {ephe_path}")

        self.ephe_path = ephe_path
        self.node_type = node_type
        self.flags = (swe.FLG_SWIEPH if ephe_path else swe.FLG_MOSEPH) | swe.FLG_SPEED
        if ephe_path:
            with _swe_lock:
                swe.set_ephe_path(ephe_path)

    def __repr__(self):
        return f"SwissEphemerisProvider(ephe_path={self.ephe_path!r}, node_type={self.node_type!r})"

    def compute(self, jd_ut: float) -> List[Dict[str, object]]:
        """
        Compute tropical positions and speeds.

        Returns:
            list: One dict per graha with planet, longitude, speed and
                  retrograde. Rahu and Ketu are always retrograde.

        Raises:
            ValidationError: If jd_ut is not a finite number
            CalculationError: If Swiss Ephemeris calculation fails
        """
        if isinstance(jd_ut, bool) or not isinstance(jd_ut, (int, float)) or not math.isfinite(jd_ut):
            raise ValidationError(f"Invalid julian day: must be a finite number, got {jd_ut!r}")

        node_body = swe.MEAN_NODE if self.node_type == "MEAN" else swe.TRUE_NODE
        try:
            result = swe.calc_ut(jd_ut, node_body, self.flags)
            # result[0] = (longitude, latitude, distance, speed_long, speed_lat, speed_dist)
            rahu_long = normalize_angle(float(result[0][0]))
            rahu_speed = float(result[0][3])
        except swe.Error as e:
            raise CalculationError(f"Failed to calculate Rahu/Ketu position: {e}") from e

        out = []
        for name, body in PLANET_BODIES:
            if name == "RAHU":
                lng, spd = rahu_long, rahu_speed
            elif name == "KETU":
                # Ketu is always 180° opposite to Rahu
                lng, spd = normalize_angle(rahu_long + 180.0), rahu_speed
            else:
                try:
                    result = swe.calc_ut(jd_ut, body, self.flags)
                except swe.Error as e:
                    raise CalculationError(f"Failed to calculate position for {name}: {e}") from e
                lng = normalize_angle(float(result[0][0]))
                spd = float(result[0][3])

            out.append({
                "planet": name,
                "longitude": lng,
                "speed": spd,
                "retrograde": True if name in ("RAHU", "KETU") else spd < 0,
            })
        return out

    def __call__(self, jd_ut: float) -> Dict[str, float]:
        return {p["planet"]: p["longitude"] for p in self.compute(jd_ut)}


def _year_midpoint_jd(year: float) -> float:
    return J2000 + (year + 0.5 - 2000.0) * DAYS_PER_JULIAN_YEAR


def swisseph_ayanamsa(key: str) -> Callable[[float], float]:
    """
    Return a ``(year) -> degrees`` ayanamsa function for a named model.

    Swiss Ephemeris models are evaluated at the middle of the calendar year.
    VEDANJANAM is Lahiri plus 6 arc minutes. LAHIRI_LINEAR is the closed-form
    yearly model and needs no ephemeris.
    """
    if key not in AYANAMSHA_KEYS:
        raise ValidationError(f"Unknown ayanamsha: {key}")
    if key == "LAHIRI_LINEAR":
        return lahiri_ayanamsa

    sid_mode = AYANAMSHA["LAHIRI" if key == "VEDANJANAM" else key]
    offset = VEDANJANAM_OFFSET_DEG if key == "VEDANJANAM" else 0.0

    def ayanamsa(year: float) -> float:
        if isinstance(year, bool) or not isinstance(year, (int, float)) or not math.isfinite(year):
            raise ValidationError(f"Invalid year: must be a finite number, got {year!r}")
        with _swe_lock:
            swe.set_sid_mode(sid_mode)
            value = swe.get_ayanamsa_ut(_year_midpoint_jd(year))
        return value + offset

    ayanamsa.__name__ = f"{key.lower()}_ayanamsa"
    return ayanamsa


def ascendant_and_houses(
    jd_ut: float,
    lat: float,
    lon: float,
    house_system: str,
    ayanamsa_deg: float = 0.0,
) -> Tuple[float, List[float], Dict[str, float]]:
    """
    Calculate ascendant, house cusps and the four angles.

    Longitudes are tropical unless ``ayanamsa_deg`` is given, in which case
    it is subtracted from every value. Whole-sign cusps are built from the
    corrected ascendant so they fall on sign boundaries of that zodiac.

    Returns:
        tuple: (asc_long, cusps_list, angles_dict)
            - asc_long: Ascendant longitude in degrees
            - cusps_list: 12 house cusps, house 1 first
            - angles_dict: Dictionary with keys 'asc', 'mc', 'ic', 'dsc'
    """
    if house_system not in HOUSE_CODES:
        raise ValidationError(f"Unknown house system: {house_system}")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise ValidationError(f"Invalid location: latitude={lat}, longitude={lon}")

    hcode = HOUSE_CODES[house_system]
    # Whole sign and equal houses only need the angles, which Placidus provides
    query_code = b"P" if hcode in ("W", "E") else hcode.encode()
    try:
        cusps, ascmc = swe.houses(jd_ut, lat, lon, query_code)
    except swe.Error as e:
        raise CalculationError(f"House calculation failed for {house_system}: {e}") from e

    asc = normalize_angle(ascmc[0] - ayanamsa_deg)
    mc = normalize_angle(ascmc[1] - ayanamsa_deg)
    angles = {
        "asc": asc,
        "mc": mc,
        "ic": normalize_angle(mc + 180.0),
        "dsc": normalize_angle(asc + 180.0),
    }

    if hcode == "W":
        cusps_list = compute_whole_sign_cusps(sign_index(asc))
    elif hcode == "E":
        cusps_list = compute_equal_cusps(asc)
    else:
        cusps_list = [normalize_angle(cusps[i] - ayanamsa_deg) for i in range(12)]

    logger.debug(f"Angles calculated: ASC={asc:.2f}°, MC={mc:.2f}°, IC={angles['ic']:.2f}°, DSC={angles['dsc']:.2f}°")
    return asc, cusps_list, angles
