import json
import logging

import pytest

from conftest import FailingProvider, zero_ayanamsa
from dasha_transit import create_app
from dasha_transit.config import Config
from dasha_transit.logging_config import JsonFormatter
from dasha_transit.logging_utils import REDACTED, sanitize_dict

BIRTH = {
    "datetime": "1990-05-15T10:30:00",
    "tz": "Asia/Kolkata",
    "latitude": 18.5204,
    "longitude": 73.8567,
}


def test_healthz(client):
    response = client.get('/healthz')
    assert response.status_code == 200
    assert response.json == {"ok": True}


def test_analysis_endpoint(client):
    """Full analysis for a birth chart at a fixed date"""
    response = client.post('/analysis', json={**BIRTH, "analysisDate": "2020-01-01T00:00:00Z"})
    assert response.status_code == 200

    result = response.json
    assert result['chart']['birthDatetimeUTC'] == "1990-05-15T05:00:00Z"
    assert result['chart']['houseSystem'] == "WHOLE_SIGN"
    # The fixed ephemeris puts the Moon at 100°: Pushya, ruled by Saturn
    assert result['chart']['moonNakshatra']['name'] == "Pushya"
    assert result['chart']['dashaBalance']['lord'] == "SATURN"

    analysis = result['analysis']
    assert analysis['analysisDate'] == "2020-01-01T00:00:00Z"
    assert analysis['currentDasha']['mahadasha']['planet'] == "KETU"
    assert len(analysis['predictions']['daily']) == 2
    assert 0.0 <= analysis['periodAnalysis']['strength']['overallStrength'] <= 1.0


def test_analysis_endpoint_rejects_bad_latitude(client):
    response = client.post('/analysis', json={**BIRTH, "latitude": 123})
    assert response.status_code == 400
    assert response.json['error']['code'] == "VALIDATION_ERROR"


def test_analysis_endpoint_rejects_bad_timezone(client):
    response = client.post('/analysis', json={**BIRTH, "tz": "Mars/Olympus_Mons"})
    assert response.status_code == 400


def test_dasha_endpoint_depth_and_window(client):
    data = {**BIRTH, "depth": 2, "fromDate": "2020-01-01T00:00:00Z", "toDate": "2021-01-01T00:00:00Z",
            "atDate": "2020-06-01T00:00:00Z"}
    response = client.post('/dasha', json=data)
    assert response.status_code == 200

    result = response.json
    assert result['metadata']['system'] == 'vimshottari'
    assert result['metadata']['depth'] == 2
    assert result['metadata']['moonNakshatra'] == "Pushya"
    assert result['metadata']['fromDate'] == "2020-01-01T00:00:00Z"

    timeline = result['timeline']
    assert [p['lord'] for p in timeline] == ["KETU"]
    assert timeline[0]['start'] == "2020-01-01T00:00:00Z"
    assert timeline[0]['active'] is True
    children = timeline[0]['antardasha']
    assert children and all('pratyantardasha' not in c for c in children)
    assert sum(1 for c in children if c['active']) == 1


def test_dasha_endpoint_rejects_depth_4(client):
    response = client.post('/dasha', json={**BIRTH, "depth": 4})
    assert response.status_code == 400
    assert response.json['error']['code'] == "VALIDATION_ERROR"


def test_dasha_endpoint_rejects_inverted_window(client):
    data = {**BIRTH, "fromDate": "2021-01-01T00:00:00Z", "toDate": "2020-01-01T00:00:00Z"}
    response = client.post('/dasha', json=data)
    assert response.status_code == 400


def test_transits_endpoint_positions_only(client):
    response = client.post('/transits', json={"date": "2025-09-30T00:00:00Z"})
    assert response.status_code == 200
    result = response.json
    assert result['date'] == "2025-09-30T00:00:00Z"
    assert result['positions']['SUN'] == pytest.approx(40.0)
    assert 'aspects' not in result


def test_transits_endpoint_with_birth(client):
    response = client.post('/transits', json={"date": "2025-09-30T00:00:00Z", "birth": BIRTH})
    assert response.status_code == 200
    aspects = response.json['aspects']
    # Natal and transit positions coincide under the fixed ephemeris
    assert {"natalPlanet": "SUN", "transitPlanet": "SUN", "aspect": "CONJUNCTION",
            "orb": 0.0, "strength": 1.0} in aspects


def test_transits_endpoint_rejects_bad_date(client):
    response = client.post('/transits', json={"date": "yesterday"})
    assert response.status_code == 400


def test_ephemeris_failure_is_500():
    app = create_app(position_provider=FailingProvider(), ayanamsa=zero_ayanamsa, config=Config({}))
    response = app.test_client().post('/transits', json={"date": "2025-09-30T00:00:00Z"})
    assert response.status_code == 500
    assert response.json['error']['code'] == "CALCULATION_ERROR"
    assert "ephemeris file missing" in response.json['error']['details']['error']


def test_config_validation():
    with pytest.raises(ValueError, match="AYANAMSHA"):
        create_app(config=Config({"AYANAMSHA": "FOO"}))
    with pytest.raises(ValueError, match="ORB_TRINE"):
        Config({"ORB_TRINE": "wide"}).validate()


def test_config_orbs_reach_the_engine(provider):
    app = create_app(position_provider=provider, ayanamsa=zero_ayanamsa, config=Config({"ORB_TRINE": "4"}))
    assert app.extensions["dasha_transit"].transit_calculator.orbs.trine == 4.0


def test_sanitize_dict_redacts_birth_data():
    data = {"datetime": "1990-05-15T10:30:00", "latitude": 18.5, "depth": 2,
            "token": "abc", "birth": {"tz": "Asia/Kolkata"}}
    assert sanitize_dict(data) == {"datetime": REDACTED, "latitude": REDACTED, "depth": 2, "birth": REDACTED}


def test_json_formatter_carries_context():
    record = logging.LogRecord("dasha_transit.routes", logging.INFO, __file__, 1, "Dasha request", None, None)
    record.extra_data = {"endpoint": "/dasha"}
    data = json.loads(JsonFormatter().format(record))
    assert data["message"] == "Dasha request"
    assert data["level"] == "INFO"
    assert data["extra"] == {"endpoint": "/dasha"}
