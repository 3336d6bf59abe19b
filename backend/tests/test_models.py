import pydantic
import pytest

from dasha_transit.astro.errors import ValidationError
from dasha_transit.astro.models import (
    AspectOrbs,
    BirthChart,
    HouseCusps,
    MoonNakshatra,
    PlanetPosition,
    VimshottariTable,
    coerce_model,
)
from dasha_transit.astro.utils import nakshatra_descriptor

SPAN = 360.0 / 27.0


def test_house_cusps_accepts_wrapping_sequence():
    cusps = HouseCusps([350, 20, 50, 80, 110, 140, 170, 200, 230, 260, 290, 300])
    assert len(cusps) == 12
    assert cusps[0] == 350.0
    assert cusps.arc(12) == (300.0, 350.0)
    assert cusps.arc(1) == (350.0, 20.0)


@pytest.mark.parametrize("values", [
    list(range(11)),
    [0, 30, 60, 90, 120, 150, 180, 210, 240, 270, 300, float("nan")],
    [0, 30, 60, 90, 120, 150, 180, 210, 240, 270, 300, 360],
    [0, 0, 60, 90, 120, 150, 180, 210, 240, 270, 300, 330],
    [0, 330, 300, 270, 240, 210, 180, 150, 120, 90, 60, 30],
    "not cusps",
])
def test_house_cusps_rejects_malformed(values):
    with pytest.raises(ValidationError, match="Invalid house cusps"):
        HouseCusps(values)


def test_planet_position_derives_sign():
    pos = PlanetPosition(longitude=95.5)
    assert pos.sign == 3
    assert pos.degree_in_sign == pytest.approx(5.5)
    assert pos.retrograde is False


def test_planet_position_rejects_inconsistent_sign():
    with pytest.raises(pydantic.ValidationError):
        PlanetPosition(longitude=95.5, sign=4)
    with pytest.raises(pydantic.ValidationError):
        PlanetPosition(longitude=360.0)


def test_birth_chart_normalises_planet_names(chart_data):
    chart_data["planets"] = {"sun ": {"longitude": 10.0}, "Moon": {"longitude": 0.0}}
    chart = BirthChart.model_validate(chart_data)
    assert set(chart.planets) == {"SUN", "MOON"}
    assert chart.ascendant_sign == 0


def test_birth_chart_ascendant_falls_back_to_first_cusp(chart_data):
    chart_data.pop("ascendant")
    chart_data["house_cusps"] = [(75.0 + 30 * i) % 360 for i in range(12)]
    chart = BirthChart.model_validate(chart_data)
    assert chart.ascendant_longitude == 75.0
    assert chart.ascendant_sign == 2


def test_birth_chart_serialises_cusps_as_list(chart):
    dumped = chart.model_dump()
    assert dumped["house_cusps"] == [i * 30.0 for i in range(12)]


def test_coerce_model_names_the_field(chart_data):
    chart_data["latitude"] = 120
    with pytest.raises(ValidationError, match="Invalid birth chart: latitude"):
        coerce_model(BirthChart, chart_data, "birth chart")


def test_coerce_model_passes_instances_through(chart):
    assert coerce_model(BirthChart, chart, "birth chart") is chart
    with pytest.raises(ValidationError):
        coerce_model(BirthChart, 42, "birth chart")


def test_moon_nakshatra_descriptor_is_consistent():
    nak = nakshatra_descriptor(100.0)
    assert (nak.index, nak.name, nak.lord) == (8, "Pushya", "SATURN")
    assert MoonNakshatra.model_validate(nak.model_dump()) == nak


@pytest.mark.parametrize("fields", [
    # Longitude 100° lies in Pushya, not Ashwini
    {"longitude": 100.0, "index": 1, "lord": "KETU", "degrees_elapsed": 0.0},
    {"longitude": 100.0, "index": 8, "lord": "KETU", "degrees_elapsed": 100.0 - 7 * SPAN},
    {"longitude": 100.0, "index": 8, "lord": "SATURN", "degrees_elapsed": 0.0},
    {"longitude": 5.0, "index": 1, "lord": "KETU", "degrees_elapsed": 5.0, "degrees_remaining": 1.0},
    {"longitude": 5.0, "index": 1, "lord": "KETU", "degrees_elapsed": 5.0, "name": "Bharani"},
    {"longitude": 5.0, "index": 1, "lord": "KETU", "degrees_elapsed": 5.0, "pada": 4},
    {"longitude": 360.0, "index": 27, "lord": "MERCURY", "degrees_elapsed": SPAN},
])
def test_moon_nakshatra_must_agree_with_longitude(fields):
    with pytest.raises(pydantic.ValidationError):
        MoonNakshatra(**fields)
    with pytest.raises(ValidationError, match="Invalid moon nakshatra"):
        coerce_model(MoonNakshatra, fields, "moon nakshatra")


def test_vimshottari_table_defaults():
    table = VimshottariTable()
    assert table.total_years == 120.0
    assert table.sequence_from("MOON")[:3] == ["MOON", "MARS", "RAHU"]
    assert table.sequence_from("MERCURY")[-1] == "SATURN"
    with pytest.raises(ValidationError, match="Invalid dasha lord"):
        table.years_for("PLUTO")


def test_vimshottari_table_rejects_missing_years():
    with pytest.raises(pydantic.ValidationError):
        VimshottariTable(lords=("SUN", "MOON"), years={"SUN": 6})


def test_aspect_orbs():
    orbs = AspectOrbs(trine=5)
    assert orbs.orb_for("TRINE") == 5
    assert orbs.orb_for("CONJUNCTION") == 10
    with pytest.raises(ValidationError):
        orbs.orb_for("NO_ASPECT")
    with pytest.raises(pydantic.ValidationError):
        AspectOrbs(square=-1)
