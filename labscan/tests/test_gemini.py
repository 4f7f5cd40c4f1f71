import asyncio
import json

import httpx
import pytest

from labscan.schemas.labs import LabResult, ReferenceRange
from labscan.services import gemini, report_pipeline


def _install_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", factory)


def _gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_extract_json_array_strips_markdown_fences():
    reply = '```json\n[{"parameter": "Glucose"}]\n```'
    assert gemini.extract_json_array(reply) == [{"parameter": "Glucose"}]


def test_extract_json_array_ignores_surrounding_prose():
    reply = 'Here you go:\n[{"parameter": "ALT"}]\nHope this helps.'
    assert gemini.extract_json_array(reply) == [{"parameter": "ALT"}]


@pytest.mark.parametrize("reply", ["", "not json at all", '{"parameter": "ALT"}'])
def test_extract_json_array_rejects_unusable_replies(reply):
    with pytest.raises(gemini.GeminiError):
        gemini.extract_json_array(reply)


def test_normalize_recomputes_status_from_range():
    items = [
        {
            "parameter": "Glucose",
            "value": "180",
            "unit": "mg/dL",
            "range": {"low": 70, "high": 100},
            "status": "Normal",
        }
    ]
    [result] = gemini.normalize_ai_results(items)
    assert result.status == "High"
    assert result.value == "180"


def test_normalize_drops_incomplete_items():
    items = [
        {"parameter": "", "value": "1", "unit": "x", "range": {"low": 0, "high": 1}},
        {"parameter": "Sodium", "value": "", "unit": "mmol/L", "range": {"low": 135, "high": 145}},
        {"parameter": "Sodium", "value": "140", "unit": "", "range": {"low": 135, "high": 145}},
        {"parameter": "Sodium", "value": "140", "unit": "mmol/L", "range": {"low": "a", "high": 145}},
        {"parameter": "Sodium", "value": "140", "unit": "mmol/L", "range": {"low": True, "high": 145}},
        "garbage",
    ]
    assert gemini.normalize_ai_results(items) == []


def test_normalize_fills_range_for_known_parameter():
    [result] = gemini.normalize_ai_results([{"parameter": "HGB", "value": 10.5, "unit": "g/dL"}])
    assert (result.range.low, result.range.high) == (12.0, 16.0)
    assert result.status == "Low"
    assert result.value == "10.5"


def test_non_numeric_value_needs_attention():
    items = [
        {"parameter": "Urine Protein", "value": "trace", "unit": "mg/dL", "range": {"low": 0, "high": 14}},
        {
            "parameter": "Nitrite",
            "value": "positive",
            "unit": "-",
            "range": {"low": 0, "high": 0},
            "status": "High",
        },
    ]
    first, second = gemini.normalize_ai_results(items)
    assert first.status == "Needs Attention"
    assert first.value == "trace"
    assert second.status == "High"


def test_generate_content_without_key_raises(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "")
    with pytest.raises(gemini.GeminiError):
        asyncio.run(gemini.generate_content("hello"))


def test_analyze_lab_report_round_trip(monkeypatch, with_gemini_key):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        payload = [
            {
                "parameter": "Hemoglobin",
                "value": "13.5",
                "unit": "g/dL",
                "range": {"low": 12, "high": 16},
                "status": "Normal",
            },
            {"parameter": "Broken"},
        ]
        return httpx.Response(200, json=_gemini_reply("```json\n" + json.dumps(payload) + "\n```"))

    _install_transport(monkeypatch, handler)
    results = asyncio.run(gemini.analyze_lab_report("Hemoglobin: 13.5 g/dL"))
    assert [(r.parameter, r.value, r.status) for r in results] == [("Hemoglobin", "13.5", "Normal")]
    assert ":generateContent" in seen["url"]
    assert "key=test-key" in seen["url"]
    prompt = seen["body"]["contents"][0]["parts"][0]["text"]
    assert "Hemoglobin: 13.5 g/dL" in prompt
    assert "Blood Urea Nitrogen: 7-20 mg/dL" in prompt


def test_http_error_becomes_gemini_error(monkeypatch, with_gemini_key):
    _install_transport(monkeypatch, lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(gemini.GeminiError):
        asyncio.run(gemini.analyze_lab_report("Glucose: 90 mg/dL"))


def test_insights_skip_model_when_all_normal(monkeypatch, with_gemini_key):
    def handler(request):
        raise AssertionError("model should not be called")

    _install_transport(monkeypatch, handler)
    results = [LabResult(parameter="ALT", value="20", unit="U/L", range=ReferenceRange(low=7, high=45))]
    assert asyncio.run(gemini.get_lab_insights(results)) == gemini.ALL_NORMAL_INSIGHT


def test_insights_failure_returns_placeholder(monkeypatch, with_gemini_key):
    _install_transport(monkeypatch, lambda request: httpx.Response(500))
    results = [
        LabResult(parameter="ALT", value="90", unit="U/L", range=ReferenceRange(low=7, high=45), status="High")
    ]
    assert asyncio.run(gemini.get_lab_insights(results)) == gemini.INSIGHTS_UNAVAILABLE


def test_insights_without_key(no_gemini):
    assert asyncio.run(gemini.get_lab_insights([])) == gemini.NO_KEY_INSIGHT


@pytest.mark.parametrize(
    "payload",
    [
        {"candidates": [{"content": {"role": "model", "parts": []}}]},
        {"candidates": [{"content": None}]},
        {"candidates": []},
        {"promptFeedback": {"blockReason": "SAFETY"}},
    ],
)
def test_malformed_envelope_becomes_gemini_error(monkeypatch, with_gemini_key, payload):
    _install_transport(monkeypatch, lambda request: httpx.Response(200, json=payload))
    with pytest.raises(gemini.GeminiError):
        asyncio.run(gemini.generate_content("hello"))


def test_empty_parts_reply_falls_back_to_basic_parsing(monkeypatch, with_gemini_key):
    reply = {"candidates": [{"content": {"role": "model", "parts": []}}]}
    _install_transport(monkeypatch, lambda request: httpx.Response(200, json=reply))
    result = asyncio.run(report_pipeline.analyze_text("Glucose: 110 mg/dL"))
    assert result.analysisMethod == "basic_fallback"
    assert [(r.parameter, r.status) for r in result.results] == [("Glucose", "High")]
