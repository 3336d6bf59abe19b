"""
Tests for the dasha & transit orchestrator
"""
from datetime import datetime, timezone

import pytest

from conftest import FailingProvider, FixedProvider, TRANSIT_LONGITUDES, zero_ayanamsa
from dasha_transit.astro.analysis import DashaTransitCalculator, stage
from dasha_transit.astro.errors import CalculationError, ValidationError

DATE = datetime(2025, 9, 30, tzinfo=timezone.utc)


def test_full_analysis(calculator, chart):
    analysis = calculator.calculate_dasha_transits(chart, DATE)

    assert analysis.analysis_date == DATE
    assert analysis.current_dasha.mahadasha.planet == "MOON"
    assert analysis.current_dasha.antardasha.planet == "RAHU"
    assert analysis.transit_positions == pytest.approx(TRANSIT_LONGITUDES)
    assert analysis.transit_aspects, "fixed positions produce at least one aspect"
    assert [p.planet for p in analysis.predictions["daily"]] == ["MOON", "MOON"]
    assert len(analysis.predictions["major"]) == 4
    assert analysis.period_analysis.strength.overall_strength == pytest.approx(0.5)


def test_analysis_accepts_chart_mapping(calculator, chart_data):
    analysis = calculator.calculate_dasha_transits(chart_data, DATE)
    assert analysis.current_dasha.mahadasha.planet == "MOON"


def test_analysis_defaults_to_now(calculator, chart):
    before = datetime.now(timezone.utc)
    analysis = calculator.calculate_dasha_transits(chart)
    assert before <= analysis.analysis_date <= datetime.now(timezone.utc)


def test_analysis_before_birth_has_no_dasha(calculator, chart):
    analysis = calculator.calculate_dasha_transits(chart, datetime(1980, 1, 1, tzinfo=timezone.utc))
    assert analysis.current_dasha is None
    assert analysis.period_analysis.favorable_periods == []
    assert analysis.period_analysis.strength.overall_strength == 0.5


def test_dasha_closure_targets_other_dates(calculator, chart):
    analysis = calculator.calculate_dasha_transits(chart, DATE)
    other = analysis.get_dasha_for_date(datetime(2000, 1, 1, tzinfo=timezone.utc))
    assert other.mahadasha.planet == "VENUS"
    assert analysis.get_dasha_for_date(datetime(1980, 1, 1, tzinfo=timezone.utc)) is None
    # The analysis itself is unchanged
    assert analysis.current_dasha.mahadasha.planet == "MOON"


def test_transit_closure_returns_snapshot(calculator, chart, provider):
    analysis = calculator.calculate_dasha_transits(chart, DATE)
    target = datetime(2030, 1, 1, tzinfo=timezone.utc)
    snapshot = analysis.get_transits_for_date(target)

    assert snapshot.date == target
    assert snapshot.positions == pytest.approx(TRANSIT_LONGITUDES)
    assert [(a.natal_planet, a.transit_planet) for a in snapshot.aspects] == [
        (a.natal_planet, a.transit_planet) for a in analysis.transit_aspects
    ]
    assert len(provider.calls) == 2


def test_closures_reject_non_dates(calculator, chart):
    analysis = calculator.calculate_dasha_transits(chart, DATE)
    with pytest.raises(ValidationError, match="Dasha calculation failed"):
        analysis.get_dasha_for_date("2030-01-01")
    with pytest.raises(ValidationError, match="Transit calculation failed"):
        analysis.get_transits_for_date(None)


def test_invalid_chart_names_the_stage(calculator, chart_data):
    chart_data["house_cusps"] = [0, 30]
    with pytest.raises(ValidationError, match="Dasha & Transit calculation failed"):
        calculator.calculate_dasha_transits(chart_data, DATE)


def test_invalid_date_is_validation_error(calculator, chart):
    with pytest.raises(ValidationError, match="Invalid analysis date"):
        calculator.calculate_dasha_transits(chart, "2025-09-30")


def test_provider_failure_names_transit_stage(chart):
    calc = DashaTransitCalculator(FailingProvider(), ayanamsa=zero_ayanamsa)
    with pytest.raises(CalculationError, match="Transit calculation failed"):
        calc.calculate_dasha_transits(chart, DATE)


def test_missing_moon_fails_prediction_stage(chart):
    calc = DashaTransitCalculator(FixedProvider({"SUN": 40.0}), ayanamsa=zero_ayanamsa)
    with pytest.raises(ValidationError, match="Prediction calculation failed"):
        calc.calculate_dasha_transits(chart, DATE)


def test_stage_wraps_plain_errors_as_calculation_error():
    with pytest.raises(CalculationError, match="Demo failed: boom") as excinfo:
        with stage("Demo"):
            raise ValueError("boom")
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_stage_lets_unrelated_errors_through():
    with pytest.raises(RuntimeError):
        with stage("Demo"):
            raise RuntimeError("not ours")


def test_analysis_to_dict(calculator, chart):
    data = calculator.calculate_dasha_transits(chart, DATE).to_dict()
    assert set(data) == {
        "currentDasha",
        "transitPositions",
        "transitAspects",
        "predictions",
        "periodAnalysis",
        "analysisDate",
    }
    assert data["analysisDate"] == "2025-09-30T00:00:00Z"
    assert data["currentDasha"]["mahadasha"]["planet"] == "MOON"
    assert data["currentDasha"]["antardasha"]["mahadasha"] == "MOON"
    assert set(data["periodAnalysis"]) == {"favorablePeriods", "challengingPeriods", "strength"}


def test_timing_analysis(calculator, chart):
    future = datetime(2020, 1, 1, tzinfo=timezone.utc)
    timing = calculator.generate_timing_analysis(chart, future)

    assert timing.date == future
    assert timing.dasha.mahadasha.planet == "SUN"
    assert timing.transits == pytest.approx(TRANSIT_LONGITUDES)
    assert timing.period_analysis.strength.overall_strength == pytest.approx(0.8)
    assert timing.to_dict()["dasha"]["antardasha"]["planet"] == "JUPITER"


def test_timing_analysis_rejects_bad_date(calculator, chart):
    with pytest.raises(ValidationError, match="Timing analysis generation failed"):
        calculator.generate_timing_analysis(chart, 2030)
