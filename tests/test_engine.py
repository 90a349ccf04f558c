from pathlib import Path

import pytest

from report_analyzer.commons.errors import InvalidInput
from report_analyzer.commons.report_engine import ReportEngine
from report_analyzer.parsers.catalog import BASIC_COUNTS
from report_analyzer.parsers.models import Status
from report_analyzer.validation.validators import build_reference_ranges, validate_catalog_or_raise

SETTINGS_YAML = Path(__file__).resolve().parents[1] / "report_analyzer" / "configs" / "settings.yaml"

CBC_REPORT = """COMPLETE BLOOD COUNT
Hemoglobin      6.5      g/dL     14.0-18.0
Hematocrit (PCV) 19.5    %        42-52
RBC Count       1.8      M/mcL    4.7-6.1
MCV             109.6    fL       80-100
MCH             36.5     pg       27.0-32.0
MCHC            33.3     g/dL     32.0-36.0
RDW-CV          16.0     %        11.5-14.5
WBC             6.9      K/mcL    4.8-10.8
Platelet Count  180      K/mcL    150-450
"""


def cfg_min():
    return {
        "analysis": {"borderline_fraction": 0.02, "required": ["hemoglobin", "wbc", "platelets"]},
        "ranges": {
            "hemoglobin": {"min": 14.0, "max": 18.0, "unit": "g/dL"},
            "wbc": {"min": 4.8, "max": 10.8, "unit": "K/mcL"},
            "platelets": {"min": 150, "max": 450, "unit": "K/mcL"},
        },
    }


# ----------------- Validación del catálogo -----------------
def test_catalog_defaults():
    cat = validate_catalog_or_raise({"ranges": {"wbc": {"min": 4, "max": 11}}})
    assert cat.analysis.borderline_fraction == 0.02
    assert cat.analysis.required == list(BASIC_COUNTS)
    assert cat.extra_aliases == {}


def test_catalog_keeps_int_and_float_bounds():
    ranges = build_reference_ranges(validate_catalog_or_raise(cfg_min()))
    assert ranges["platelets"].display == "150-450"
    assert ranges["hemoglobin"].display == "14.0-18.0"
    assert ranges["wbc"].unit == "K/mcL"


@pytest.mark.parametrize(
    "cfg",
    [
        {"ranges": {}},
        {"ranges": {"wbc": {"min": "4.8", "max": 10.8}}},
        {"ranges": {"wbc": {"min": True, "max": 10.8}}},
        {"ranges": {"wbc": {"min": 12, "max": 10.8}}},
        {"ranges": {"wbc": {"min": 4.8}}},
        {"ranges": {"wbc": {"min": 4.8, "max": 10.8}}, "analysis": {"borderline_fraction": 0.6}},
        {"ranges": {"wbc": {"min": 4.8, "max": 10.8}}, "parameters": {"extra_aliases": {"wbc": "leuco"}}},
    ],
)
def test_invalid_catalog_raises_invalid_input(cfg):
    with pytest.raises(InvalidInput):
        validate_catalog_or_raise(cfg)


# ----------------- Engine -----------------
def test_engine_from_settings_yaml_full_panel():
    eng = ReportEngine(str(SETTINGS_YAML))
    extracted, result = eng.analyze(CBC_REPORT)
    assert extracted["hemoglobin"] == 6.5
    status = {e.parameter: e.status for e in result}
    assert status == {
        "hemoglobin": Status.LOW,
        "wbc": Status.NORMAL,
        "rbc": Status.LOW,
        "platelets": Status.NORMAL,
        "hematocrit": Status.LOW,
        "mcv": Status.HIGH,
        "mch": Status.HIGH,
        "mchc": Status.NORMAL,
        "rdw": Status.HIGH,
    }


def test_engine_payload_shape():
    eng = ReportEngine(cfg_min())
    payload = eng.analyze_to_payload("Hemoglobin: 6.5 g/dL\nWBC 6.9 K/mcL")
    assert payload["extracted_data"]["hemoglobin"] == 6.5
    assert payload["extracted_data"]["platelets"] is None
    assert set(payload["analysis"]) == {"hemoglobin", "wbc"}
    assert payload["analysis"]["hemoglobin"] == {
        "value": 6.5,
        "unit": "g/dL",
        "range": "14.0-18.0",
        "status": "Low",
    }
    assert payload["abnormal_parameters"] == [{"parameter": "hemoglobin", "value": 6.5, "status": "Low"}]
    assert payload["missing_parameters"] == ["platelets"]
    assert payload["complete"] is False


def test_engine_uses_configured_fraction():
    cfg = cfg_min()
    cfg["analysis"]["borderline_fraction"] = 0.1
    _, result = ReportEngine(cfg).analyze("Platelets: 170")
    assert result.get("platelets").status == Status.BORDERLINE_LOW


def test_engine_extra_aliases_are_appended():
    cfg = cfg_min()
    cfg["parameters"] = {"extra_aliases": {"hemoglobin": [["hemoglobina"]]}}
    eng = ReportEngine(cfg)
    extracted, _ = eng.analyze("Hemoglobina: 11.2 g/dL")
    assert extracted["hemoglobin"] == 11.2
    hb = next(d for d in eng.definitions if d.name == "hemoglobin")
    assert hb.patterns[-1].aliases == ("hemoglobina",)


def test_engine_rejects_extra_aliases_for_unknown_parameter():
    cfg = cfg_min()
    cfg["parameters"] = {"extra_aliases": {"ferritin": [["ferritin"]]}}
    with pytest.raises(InvalidInput):
        ReportEngine(cfg)


def test_engine_rejects_unsupported_config():
    with pytest.raises(InvalidInput):
        ReportEngine(42)


def test_engine_ignores_ranges_without_definition():
    cfg = cfg_min()
    cfg["ranges"]["ferritin"] = {"min": 30, "max": 400, "unit": "ng/mL"}
    _, result = ReportEngine(cfg).analyze("Ferritin 85\nWBC 6.9")
    assert result.parameters == ["wbc"]


def test_engine_falls_back_to_catalog_unit():
    cfg = {"ranges": {"hemoglobin": {"min": 14.0, "max": 18.0}, "wbc": {"min": 4.8, "max": 10.8, "unit": "10^3/uL"}}}
    eng = ReportEngine(cfg)
    assert eng.ranges["hemoglobin"].unit == "g/dL"
    payload = eng.analyze_to_payload("Hemoglobin 15.0\nWBC 6.9")
    assert payload["analysis"]["hemoglobin"]["unit"] == "g/dL"
    # la unidad configurada manda
    assert payload["analysis"]["wbc"]["unit"] == "10^3/uL"
