from datetime import datetime, timezone

import pytest

from dasha_transit.astro.dasha import DashaCalculator
from dasha_transit.astro.errors import ValidationError
from dasha_transit.astro.period_analyzer import PeriodAnalyzer, dasha_remedies, functional_nature

# For the Aries chart in conftest: SUN/JUPITER runs on 2020-01-01 (both benefic),
# VENUS/VENUS on 2000-01-01 (both malefic) and MOON/RAHU on 2025-09-30 (neutral).
BENEFIC_DATE = datetime(2020, 1, 1, tzinfo=timezone.utc)
MALEFIC_DATE = datetime(2000, 1, 1, tzinfo=timezone.utc)
NEUTRAL_DATE = datetime(2025, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def analyzer():
    return PeriodAnalyzer()


def dasha_at(chart, date):
    return DashaCalculator().get_current_dasha(chart.birth_utc, date, chart.dasha_balance)


def test_functional_nature_for_aries():
    nature = functional_nature(0)
    assert nature["favorable"] == {"SUN", "MARS", "JUPITER"}
    assert {"MERCURY", "VENUS", "SATURN"} <= nature["malefic"]
    with pytest.raises(ValidationError):
        functional_nature(12)


def test_remedies_fall_back_for_unknown_planet():
    assert dasha_remedies("SATURN")[0] == "Light a sesame oil lamp on Saturdays"
    assert dasha_remedies("PLUTO") == ["General remedies", "Consult astrologer"]


def test_favorable_periods_for_benefic_lords(analyzer, chart):
    current = dasha_at(chart, BENEFIC_DATE)
    assert (current.mahadasha.planet, current.antardasha.planet) == ("SUN", "JUPITER")

    favorable = analyzer.identify_favorable_periods(chart, BENEFIC_DATE, current)
    assert [(w.level, w.planet) for w in favorable] == [("MAHADASHA", "SUN"), ("ANTARDASHA", "JUPITER")]
    assert favorable[0].start == current.mahadasha.start
    assert favorable[1].end == current.antardasha.end
    assert "Aries" in favorable[0].reason
    assert analyzer.identify_challenging_periods(chart, BENEFIC_DATE, current) == []


def test_challenging_periods_carry_remedies(analyzer, chart):
    current = dasha_at(chart, MALEFIC_DATE)
    challenging = analyzer.identify_challenging_periods(chart, MALEFIC_DATE, current)
    assert [(w.level, w.planet) for w in challenging] == [("MAHADASHA", "VENUS"), ("ANTARDASHA", "VENUS")]
    assert challenging[0].remedies == dasha_remedies("VENUS")
    assert "remedies" in challenging[0].to_dict()


def test_no_current_dasha_gives_no_windows(analyzer, chart):
    assert analyzer.identify_favorable_periods(chart, NEUTRAL_DATE, None) == []
    assert analyzer.identify_challenging_periods(chart, NEUTRAL_DATE, None) == []


def test_windows_accept_chart_mapping(analyzer, chart_data, chart):
    current = dasha_at(chart, BENEFIC_DATE)
    assert len(analyzer.identify_favorable_periods(chart_data, BENEFIC_DATE, current)) == 2


def test_windows_reject_bad_inputs(analyzer, chart):
    with pytest.raises(ValidationError):
        analyzer.identify_favorable_periods({"latitude": 10}, BENEFIC_DATE, None)
    with pytest.raises(ValidationError):
        analyzer.identify_challenging_periods(chart, "2020-01-01", None)


def test_strength_favorable(analyzer, chart, provider):
    current = dasha_at(chart, BENEFIC_DATE)
    strength = analyzer.analyze_period_strength(chart, provider(0), current)
    assert strength.overall_strength == pytest.approx(0.8)
    assert strength.recommendations[0].startswith("Favorable period")
    assert strength.dasha_influence["mahadasha"] == {"planet": "SUN", "status": "favorable", "transitLongitude": 40.0}
    assert strength.dasha_influence["antardasha"]["planet"] == "JUPITER"


def test_strength_challenging_adds_mahadasha_remedy(analyzer, chart, provider):
    current = dasha_at(chart, MALEFIC_DATE)
    strength = analyzer.analyze_period_strength(chart, provider(0), current)
    assert strength.overall_strength == pytest.approx(0.2)
    assert strength.recommendations[0].startswith("Challenging period")
    assert strength.recommendations[-1] == dasha_remedies("VENUS")[0]


def test_strength_neutral_lords_stay_at_baseline(analyzer, chart, provider):
    current = dasha_at(chart, NEUTRAL_DATE)
    assert (current.mahadasha.planet, current.antardasha.planet) == ("MOON", "RAHU")
    strength = analyzer.analyze_period_strength(chart, provider(0), current)
    assert strength.overall_strength == pytest.approx(0.5)
    assert strength.recommendations[0].startswith("Moderate period")
    assert strength.dasha_influence["mahadasha"]["status"] == "neutral"


def test_strength_without_dasha(analyzer, chart):
    strength = analyzer.analyze_period_strength(chart, {}, None)
    assert strength.overall_strength == 0.5
    assert strength.dasha_influence == {}


def test_strength_stays_in_unit_interval(chart, provider):
    # A classifier that rates everything favorable cannot push the score past 1
    analyzer = PeriodAnalyzer(classifier=lambda sign: {"favorable": {"SUN", "JUPITER"}, "malefic": set()})
    current = dasha_at(chart, BENEFIC_DATE)
    strength = analyzer.analyze_period_strength(chart, provider(0), current)
    assert 0.0 <= strength.overall_strength <= 1.0


def test_custom_remedies(chart):
    analyzer = PeriodAnalyzer(remedies=lambda planet: [f"Remedy for {planet}"])
    current = dasha_at(chart, MALEFIC_DATE)
    challenging = analyzer.identify_challenging_periods(chart, MALEFIC_DATE, current)
    assert challenging[0].remedies == ["Remedy for VENUS"]


def test_strength_rejects_non_mapping_positions(analyzer, chart):
    with pytest.raises(ValidationError):
        analyzer.analyze_period_strength(chart, [1, 2, 3], None)
