from datetime import datetime

import pydantic
from flask import Blueprint, current_app, jsonify, request

from .astro.errors import DashaTransitError, ValidationError
from .astro.utils import isoformat_utc, to_utc
from .chart_calc import build_birth_chart, chart_summary
from .logging_config import create_logger_with_context
from .logging_utils import sanitize_headers, sanitize_request_data
from .schemas import AnalysisRequest, BirthData, DashaRequest, TransitRequest

bp = Blueprint("api", __name__)


def _error(code: str, message: str, details: dict, status: int):
    return jsonify({"error": {"code": code, "message": message, "details": details}}), status


def _validation_error(e: Exception):
    return _error("VALIDATION_ERROR", str(e), {"field": "request", "value": "invalid"}, 400)


def _log_request(log, name: str) -> None:
    log.info(f"{name} API Request received - Method: {request.method}, URL: {request.path}")
    log.debug(f"Request Headers: {sanitize_headers(request.headers)}")
    log.debug(f"Request Data: {sanitize_request_data(request)}")


def _calculator():
    return current_app.extensions["dasha_transit"]


def _parse_date(value: str) -> datetime:
    # Dates without an offset are UTC
    return to_utc(value, None, 0)


def _birth_chart(payload: BirthData):
    house_system = payload.houseSystem or current_app.config["HOUSE_SYSTEM"]
    chart = build_birth_chart(
        payload.datetime,
        payload.latitude,
        payload.longitude,
        _calculator(),
        tz=payload.tz,
        utc_offset_minutes=payload.utcOffsetMinutes,
        house_system=house_system,
    )
    return chart, house_system


def _run(name: str, schema, handler):
    """Validate the JSON body against ``schema`` and map engine errors to HTTP."""
    log = create_logger_with_context(__name__, endpoint=request.path)
    _log_request(log, name)
    try:
        payload = schema.model_validate_json(request.data or b"{}")
    except pydantic.ValidationError as e:
        log.error(f"{name} request validation error: {e.error_count()} error(s)")
        return _validation_error(e)

    try:
        result = handler(payload)
    except ValidationError as e:
        log.error(f"{name} validation error: {e}")
        return _validation_error(e)
    except DashaTransitError as e:
        log.error(f"{name} calculation error: {e}")
        return _error("CALCULATION_ERROR", f"Failed to calculate {name.lower()}", {"error": str(e)}, 500)
    except Exception as e:
        log.exception(f"{name} unexpected error")
        return _error("CALCULATION_ERROR", f"Failed to calculate {name.lower()}", {"error": str(e)}, 500)

    log.info(f"{name} calculation successful - Response status: 200")
    return jsonify(result), 200


@bp.route("/analysis", methods=["POST"])
def analysis():
    def handle(payload: AnalysisRequest):
        chart, house_system = _birth_chart(payload)
        analysis_date = _parse_date(payload.analysisDate) if payload.analysisDate else None
        result = _calculator().calculate_dasha_transits(chart, analysis_date)
        return {
            "chart": chart_summary(chart, house_system),
            "analysis": result.to_dict(),
        }

    return _run("Analysis", AnalysisRequest, handle)


@bp.route("/dasha", methods=["POST"])
def dasha():
    def handle(payload: DashaRequest):
        chart, _ = _birth_chart(payload)
        timeline, metadata = _calculator().dasha_calculator.build_timeline(
            chart.birth_utc,
            chart.dasha_balance,
            depth=payload.depth,
            from_date=_parse_date(payload.fromDate) if payload.fromDate else None,
            to_date=_parse_date(payload.toDate) if payload.toDate else None,
            at_date=_parse_date(payload.atDate) if payload.atDate else None,
        )
        metadata["moonNakshatra"] = chart.moon_nakshatra.name
        return {"timeline": timeline, "metadata": metadata}

    return _run("Dasha", DashaRequest, handle)


@bp.route("/transits", methods=["POST"])
def transits():
    def handle(payload: TransitRequest):
        calc = _calculator().transit_calculator
        date = _parse_date(payload.date)
        positions = calc.calculate_transit_positions(date)
        out = {"date": isoformat_utc(date), "positions": positions}
        if payload.birth is not None:
            chart, _ = _birth_chart(payload.birth)
            out["aspects"] = [a.to_dict() for a in calc.calculate_transit_aspects(chart.planets, positions)]
        return out

    return _run("Transits", TransitRequest, handle)
