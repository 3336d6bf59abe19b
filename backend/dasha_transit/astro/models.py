"""
Typed inputs, configuration tables and results for the dasha/transit engine.

Inputs (birth chart and its parts) and configuration tables are pydantic
models validated at construction. Results are plain dataclasses recomputed
for every (chart, date) pair; each exposes ``to_dict()`` for JSON output.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import core_schema

from .constants import (
    ASPECT_ANGLES,
    DASHA_LORDS,
    DASHA_YEARS,
    DAYS_PER_YEAR,
    DEFAULT_ASPECT_ORBS,
    NAKSHATRA_NAMES,
    NAKSHATRA_SPAN_DEG,
    PADA_SPAN_DEG,
)
from .errors import ValidationError
from .utils import as_utc, isoformat_utc


def coerce_model(model_cls, value, label: str):
    """Return ``value`` as ``model_cls``, validating mappings.

    pydantic failures are re-raised as ValidationError naming the first
    offending field.
    """
    if isinstance(value, model_cls):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError(f"Invalid {label}: must be a {model_cls.__name__} or mapping")
    try:
        return model_cls.model_validate(dict(value))
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or label
        raise ValidationError(f"Invalid {label}: {location}: {first['msg']}") from e


# ------------------------- House cusps -------------------------

class HouseCusps(Sequence):
    """Twelve ordered house-cusp longitudes, cusp of house 1 first.

    The arcs between consecutive cusps must be positive and together wrap
    the zodiac exactly once.
    """

    __slots__ = ("_values",)

    def __init__(self, values):
        try:
            values = tuple(values)
        except TypeError:
            raise ValidationError("Invalid house cusps: must be a sequence of 12 longitudes")
        if len(values) != 12:
            raise ValidationError(f"Invalid house cusps: expected 12 values, got {len(values)}")
        for i, v in enumerate(values):
            if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
                raise ValidationError(f"Invalid house cusps: cusp {i + 1} must be a finite number")
            if not 0.0 <= v < 360.0:
                raise ValidationError(f"Invalid house cusps: cusp {i + 1} must be in [0, 360), got {v}")

        arcs = [(values[(i + 1) % 12] - values[i]) % 360.0 for i in range(12)]
        if any(arc <= 0.0 for arc in arcs) or not math.isclose(sum(arcs), 360.0, abs_tol=1e-6):
            raise ValidationError("Invalid house cusps: cusps must advance around the zodiac exactly once")
        self._values = tuple(float(v) for v in values)

    def __getitem__(self, index):
        return self._values[index]

    def __len__(self):
        return 12

    def __eq__(self, other):
        if isinstance(other, HouseCusps):
            return self._values == other._values
        return NotImplemented

    def __hash__(self):
        return hash(self._values)

    def __repr__(self):
        return f"HouseCusps({list(self._values)!r})"

    def arc(self, house: int) -> Tuple[float, float]:
        """(start, end) longitudes of a 1-based house."""
        return self._values[house - 1], self._values[house % 12]

    @classmethod
    def _coerce(cls, value):
        return value if isinstance(value, cls) else cls(value)

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(list),
        )


# ------------------------- Birth chart -------------------------

class PlanetPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    longitude: float = Field(ge=0, lt=360)
    sign: Optional[int] = Field(default=None, ge=0, le=11)
    degree_in_sign: Optional[float] = Field(default=None, ge=0, lt=30)
    house: Optional[int] = Field(default=None, ge=1, le=12)
    retrograde: bool = False

    @model_validator(mode="before")
    @classmethod
    def _derive_sign(cls, data):
        if isinstance(data, Mapping) and isinstance(data.get("longitude"), (int, float)):
            data = dict(data)
            lon = data["longitude"]
            if 0 <= lon < 360:
                expected = int(lon // 30.0)
                if data.get("sign") is None:
                    data["sign"] = expected
                elif data["sign"] != expected:
                    raise ValueError(f"sign {data['sign']} does not match longitude {lon}")
                if data.get("degree_in_sign") is None:
                    data["degree_in_sign"] = lon - expected * 30.0
        return data


class MoonNakshatra(BaseModel):
    """The natal Moon's nakshatra: one 13°20' division of the zodiac.

    Index, lord, name, pada and degrees elapsed/remaining must all agree with
    the longitude, which exactly one nakshatra owns.
    """

    model_config = ConfigDict(frozen=True)

    longitude: float
    index: int = Field(ge=1, le=27)
    name: Optional[str] = None
    pada: int = Field(default=1, ge=1, le=4)
    lord: str
    degrees_elapsed: float = Field(ge=0)
    degrees_remaining: Optional[float] = Field(default=None, ge=0)

    @field_validator("lord")
    @classmethod
    def _upper(cls, v):
        return v.strip().upper()

    @model_validator(mode="after")
    def _owned_by_longitude(self):
        # Degrees of slack for float residue at nakshatra edges
        tol = 1e-6
        if not math.isfinite(self.longitude) or not 0.0 <= self.longitude < 360.0:
            raise ValueError(f"longitude must be in [0, 360), got {self.longitude}")
        within = self.longitude - (self.index - 1) * NAKSHATRA_SPAN_DEG
        if not -tol <= within < NAKSHATRA_SPAN_DEG + tol:
            raise ValueError(f"longitude {self.longitude} does not lie in nakshatra {self.index}")
        expected_lord = DASHA_LORDS[(self.index - 1) % 9]
        if self.lord != expected_lord:
            raise ValueError(f"lord of nakshatra {self.index} is {expected_lord}, got {self.lord}")
        if self.name is not None and self.name != NAKSHATRA_NAMES[self.index - 1]:
            raise ValueError(f"nakshatra {self.index} is {NAKSHATRA_NAMES[self.index - 1]}, got {self.name}")
        if abs(self.degrees_elapsed - within) > tol:
            raise ValueError(f"degrees_elapsed {self.degrees_elapsed} does not match longitude {self.longitude}")
        if self.degrees_remaining is not None and abs(self.degrees_remaining - (NAKSHATRA_SPAN_DEG - within)) > tol:
            raise ValueError(f"degrees_remaining {self.degrees_remaining} does not match longitude {self.longitude}")
        if "pada" in self.model_fields_set:
            expected_pada = min(int(max(within, 0.0) // PADA_SPAN_DEG), 3) + 1
            if self.pada != expected_pada:
                raise ValueError(f"pada {self.pada} does not match longitude {self.longitude}")
        return self


class DashaBalance(BaseModel):
    """Remaining portion of the birth nakshatra lord's period at birth."""

    model_config = ConfigDict(frozen=True)

    lord: str
    years: float
    days: float

    @field_validator("lord")
    @classmethod
    def _upper(cls, v):
        return v.strip().upper()


class BirthChart(BaseModel):
    model_config = ConfigDict(frozen=True)

    birth_datetime: datetime
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    planets: Dict[str, PlanetPosition]
    house_cusps: HouseCusps
    ascendant: Optional[float] = Field(default=None, ge=0, lt=360)
    moon_nakshatra: MoonNakshatra
    dasha_balance: DashaBalance

    @field_validator("planets")
    @classmethod
    def _planet_keys(cls, v):
        return {name.strip().upper(): pos for name, pos in v.items()}

    @property
    def birth_utc(self) -> datetime:
        return as_utc(self.birth_datetime)

    @property
    def ascendant_longitude(self) -> float:
        return self.ascendant if self.ascendant is not None else self.house_cusps[0]

    @property
    def ascendant_sign(self) -> int:
        return int(self.ascendant_longitude // 30.0) % 12


# ------------------------- Configuration tables -------------------------

class VimshottariTable(BaseModel):
    """Lord order and years-per-lord of the 120 year Vimshottari cycle."""

    model_config = ConfigDict(frozen=True)

    lords: Tuple[str, ...] = tuple(DASHA_LORDS)
    years: Dict[str, float] = Field(default_factory=lambda: dict(DASHA_YEARS))
    days_per_year: float = Field(default=DAYS_PER_YEAR, gt=0)

    @model_validator(mode="after")
    def _check(self):
        if len(set(self.lords)) != len(self.lords):
            raise ValueError("lords must be unique")
        for lord in self.lords:
            if self.years.get(lord, 0) <= 0:
                raise ValueError(f"years for {lord} must be positive")
        return self

    @property
    def total_years(self) -> float:
        return float(sum(self.years[lord] for lord in self.lords))

    def years_for(self, lord: str) -> float:
        if lord not in self.years or lord not in self.lords:
            raise ValidationError(f"Invalid dasha lord: {lord!r} is not a Vimshottari lord")
        return float(self.years[lord])

    def sequence_from(self, lord: str) -> List[str]:
        """The full lord cycle starting at ``lord``."""
        start = self.lords.index(lord)
        return [self.lords[(start + i) % len(self.lords)] for i in range(len(self.lords))]


class AspectOrbs(BaseModel):
    """Maximum allowed deviation, in degrees, for each aspect."""

    model_config = ConfigDict(frozen=True)

    conjunction: float = Field(default=DEFAULT_ASPECT_ORBS["CONJUNCTION"], ge=0, le=30)
    sextile: float = Field(default=DEFAULT_ASPECT_ORBS["SEXTILE"], ge=0, le=30)
    square: float = Field(default=DEFAULT_ASPECT_ORBS["SQUARE"], ge=0, le=30)
    trine: float = Field(default=DEFAULT_ASPECT_ORBS["TRINE"], ge=0, le=30)
    opposition: float = Field(default=DEFAULT_ASPECT_ORBS["OPPOSITION"], ge=0, le=30)

    def orb_for(self, aspect: str) -> float:
        if aspect not in ASPECT_ANGLES:
            raise ValidationError(f"Invalid aspect: {aspect!r}")
        return getattr(self, aspect.lower())


# ------------------------- Results -------------------------

@dataclass(frozen=True)
class MahadashaPeriod:
    planet: str
    start: datetime
    end: datetime
    years: float
    type: str = "mahadasha"  # or "balance"

    @property
    def duration_days(self) -> float:
        return (self.end - self.start).total_seconds() / 86400.0

    @property
    def is_balance(self) -> bool:
        return self.type == "balance"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "planet": self.planet,
            "start": isoformat_utc(self.start),
            "end": isoformat_utc(self.end),
            "years": self.years,
            "type": self.type,
        }


@dataclass(frozen=True)
class SubPeriod:
    lord: str
    start: datetime
    end: datetime
    years_share: float

    @property
    def duration_days(self) -> float:
        return (self.end - self.start).total_seconds() / 86400.0


@dataclass(frozen=True)
class AntardashaPeriod:
    mahadasha: MahadashaPeriod
    planet: str
    start: datetime
    end: datetime
    progress: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mahadasha": self.mahadasha.planet,
            "planet": self.planet,
            "start": isoformat_utc(self.start),
            "end": isoformat_utc(self.end),
            "progress": self.progress,
        }


@dataclass(frozen=True)
class CurrentDasha:
    mahadasha: MahadashaPeriod
    antardasha: AntardashaPeriod
    progress: float
    remaining_years: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mahadasha": self.mahadasha.to_dict(),
            "antardasha": self.antardasha.to_dict(),
            "progress": self.progress,
            "remainingYears": self.remaining_years,
        }


@dataclass(frozen=True)
class TransitAspect:
    natal_planet: str
    transit_planet: str
    aspect: str
    orb: float
    strength: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "natalPlanet": self.natal_planet,
            "transitPlanet": self.transit_planet,
            "aspect": self.aspect,
            "orb": self.orb,
            "strength": self.strength,
        }


@dataclass(frozen=True)
class Prediction:
    type: str
    planet: str
    house: int
    area: str
    description: str
    timing: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "planet": self.planet,
            "house": self.house,
            "area": self.area,
            "description": self.description,
            "timing": self.timing,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class PeriodWindow:
    level: str  # MAHADASHA or ANTARDASHA
    planet: str
    start: datetime
    end: datetime
    reason: str
    remedies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "level": self.level,
            "planet": self.planet,
            "start": isoformat_utc(self.start),
            "end": isoformat_utc(self.end),
            "reason": self.reason,
        }
        if self.remedies:
            out["remedies"] = list(self.remedies)
        return out


@dataclass(frozen=True)
class PeriodStrength:
    overall_strength: float
    dasha_influence: Dict[str, Any]
    recommendations: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallStrength": self.overall_strength,
            "dashaInfluence": dict(self.dasha_influence),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class PeriodAnalysis:
    favorable_periods: List[PeriodWindow]
    challenging_periods: List[PeriodWindow]
    strength: PeriodStrength

    def to_dict(self) -> Dict[str, Any]:
        return {
            "favorablePeriods": [p.to_dict() for p in self.favorable_periods],
            "challengingPeriods": [p.to_dict() for p in self.challenging_periods],
            "strength": self.strength.to_dict(),
        }


@dataclass(frozen=True)
class TransitSnapshot:
    date: datetime
    positions: Dict[str, float]
    aspects: List[TransitAspect]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": isoformat_utc(self.date),
            "positions": dict(self.positions),
            "aspects": [a.to_dict() for a in self.aspects],
        }


def _predictions_dict(predictions: Dict[str, List[Prediction]]) -> Dict[str, Any]:
    return {key: [p.to_dict() for p in items] for key, items in predictions.items()}


@dataclass(frozen=True)
class DashaTransitAnalysis:
    current_dasha: Optional[CurrentDasha]
    transit_positions: Dict[str, float]
    transit_aspects: List[TransitAspect]
    predictions: Dict[str, List[Prediction]]
    period_analysis: PeriodAnalysis
    analysis_date: datetime
    get_dasha_for_date: Callable[[datetime], Optional[CurrentDasha]] = field(repr=False, compare=False)
    get_transits_for_date: Callable[[datetime], TransitSnapshot] = field(repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentDasha": self.current_dasha.to_dict() if self.current_dasha else None,
            "transitPositions": dict(self.transit_positions),
            "transitAspects": [a.to_dict() for a in self.transit_aspects],
            "predictions": _predictions_dict(self.predictions),
            "periodAnalysis": self.period_analysis.to_dict(),
            "analysisDate": isoformat_utc(self.analysis_date),
        }


@dataclass(frozen=True)
class TimingAnalysis:
    date: datetime
    dasha: Optional[CurrentDasha]
    transits: Dict[str, float]
    aspects: List[TransitAspect]
    predictions: Dict[str, List[Prediction]]
    period_analysis: PeriodAnalysis

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": isoformat_utc(self.date),
            "dasha": self.dasha.to_dict() if self.dasha else None,
            "transits": dict(self.transits),
            "aspects": [a.to_dict() for a in self.aspects],
            "predictions": _predictions_dict(self.predictions),
            "periodAnalysis": self.period_analysis.to_dict(),
        }
