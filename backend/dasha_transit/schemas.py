from datetime import datetime
from typing import Optional

import pytz
from pydantic import BaseModel, Field, field_validator

from .astro.constants import HOUSE_CODES


def _iso_datetime(v: str, field: str) -> str:
    try:
        datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"{field} must be in ISO-8601 format")
    return v


class BirthData(BaseModel):
    datetime: str
    tz: Optional[str] = None
    utcOffsetMinutes: Optional[int] = Field(default=None, ge=-14 * 60, le=14 * 60)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    houseSystem: Optional[str] = None

    @field_validator("houseSystem")
    @classmethod
    def _hs(cls, v):
        if v is not None and v not in HOUSE_CODES:
            raise ValueError(f"houseSystem must be one of {set(HOUSE_CODES)}")
        return v

    @field_validator("datetime")
    @classmethod
    def _dt(cls, v):
        return _iso_datetime(v, "datetime")

    @field_validator("tz")
    @classmethod
    def _tz(cls, v):
        if v is None:
            return v
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Invalid timezone: {v}")
        return v


class AnalysisRequest(BirthData):
    analysisDate: Optional[str] = None  # ISO-8601, defaults to now

    @field_validator("analysisDate")
    @classmethod
    def _ad(cls, v):
        return v if v is None else _iso_datetime(v, "analysisDate")


# ---------------- Dasha API Schemas ----------------

class DashaRequest(BirthData):
    depth: int = 3  # 1..3; default 3
    fromDate: Optional[str] = None  # ISO-8601 UTC (e.g., 1991-03-25T04:16:00Z)
    toDate: Optional[str] = None
    atDate: Optional[str] = None

    @field_validator("depth")
    @classmethod
    def _depth(cls, v):
        if v < 1 or v > 3:
            raise ValueError("depth must be between 1 and 3")
        return v

    @field_validator("fromDate", "toDate", "atDate")
    @classmethod
    def _dates(cls, v, info):
        return v if v is None else _iso_datetime(v, info.field_name)


# ---------------- Transit API Schemas ----------------

class TransitRequest(BaseModel):
    date: str
    birth: Optional[BirthData] = None

    @field_validator("date")
    @classmethod
    def _date(cls, v):
        return _iso_datetime(v, "date")
