"""Gemini-backed lab report analysis.

This is the enhanced path used when an API key is configured. Callers are
expected to fall back to :func:`labscan.services.lab_parser.parse_lab_results`
when anything here raises :class:`GeminiError`.
"""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, List, Optional

import httpx

from labscan.schemas.labs import LabResult, ReferenceRange
from labscan.services.lab_parser import canonical_value, parse_number
from labscan.services.reference_ranges import DEFAULT_RANGES, classify_status, lookup_reference

logger = logging.getLogger("labscan")

_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
_ALLOWED_STATUSES = {"Normal", "Low", "High", "Needs Attention"}

ALL_NORMAL_INSIGHT = (
    "All your lab values appear to be within normal ranges. "
    "This is generally a positive indicator of good health."
)
INSIGHTS_UNAVAILABLE = "Unable to generate insights at this time."
NO_KEY_INSIGHT = "Gemini API key not configured for insights."

ANALYSIS_PROMPT = """
You are a medical lab report analysis expert. Analyze the following medical lab report text and extract ALL health parameters with their values, units, and reference ranges.

CRITICAL INSTRUCTIONS:
1. Extract EVERY numeric health parameter you can find
2. Return ONLY valid JSON - no explanations, no markdown, no additional text
3. Include common parameters like: Hemoglobin, WBC, RBC, Platelets, Glucose, Cholesterol, Triglycerides, Creatinine, BUN, ALT, AST, etc.
4. For each parameter, determine if the value is Normal, High, or Low based on standard reference ranges
5. If no reference range is provided, use standard medical reference ranges

Return a JSON array in this EXACT format:
[
  {{
    "parameter": "Parameter Name",
    "value": "numeric_value_only",
    "unit": "unit_abbreviation",
    "range": {{"low": numeric_low_value, "high": numeric_high_value}},
    "status": "Normal|High|Low"
  }}
]

Standard Reference Ranges to use if not provided:
{reference_ranges}

Lab Report Text:
{text}

JSON Response:"""

INSIGHTS_PROMPT = """
As a medical analysis AI, provide a brief, professional summary of these lab results. Focus on the abnormal values and their potential health implications.

Lab Results:
{results}

Provide a concise 2-3 sentence summary focusing on:
1. Which values are abnormal
2. General health implications (not specific medical advice)
3. Recommendation to consult healthcare provider

Keep it professional and avoid giving specific medical advice.
"""


class GeminiError(RuntimeError):
    """The Gemini analysis path is unavailable or returned unusable output."""


def api_key() -> str:
    return (os.getenv("GEMINI_API_KEY") or "").strip()


def model_name() -> str:
    return (os.getenv("GEMINI_MODEL") or "gemini-2.5-flash").strip()


def _timeout() -> float:
    try:
        return float(os.getenv("GEMINI_TIMEOUT_S", "30"))
    except (TypeError, ValueError):
        return 30.0


def _reference_lines() -> str:
    return "\n".join(
        f"- {name}: {ref.low:g}-{ref.high:g} {unit}" for name, (unit, ref) in DEFAULT_RANGES.items()
    )


async def generate_content(prompt: str) -> str:
    """Send a single-turn prompt to Gemini and return the first candidate's text."""
    key = api_key()
    if not key:
        raise GeminiError("GEMINI_API_KEY is not configured")
    url = f"{_GEMINI_BASE_URL}/{model_name()}:generateContent"
    try:
        async with httpx.AsyncClient(timeout=_timeout()) as client:
            resp = await client.post(
                url,
                params={"key": key},
                headers={"Content-Type": "application/json"},
                json={"contents": [{"role": "user", "parts": [{"text": prompt.strip()}]}]},
            )
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPError as exc:
        raise GeminiError(f"Gemini request failed: {exc.__class__.__name__}") from exc
    except ValueError as exc:
        raise GeminiError("Gemini returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise GeminiError("Gemini returned an unexpected payload")

    try:
        text = data["candidates"][0]["content"]["parts"][0].get("text") or ""
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        raise GeminiError("Gemini response had no candidate text") from exc
    return str(text).strip()


def extract_json_array(text: str) -> List[Any]:
    """Pull the JSON array out of a model reply that may be wrapped in Markdown."""
    cleaned = (text or "").strip()
    cleaned = re.sub(r"```(?:json)?\s*", "", cleaned)
    start = cleaned.find("[")
    end = cleaned.rfind("]")
    if start != -1 and end > start:
        cleaned = cleaned[start : end + 1]
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise GeminiError("Gemini response was not valid JSON") from exc
    if not isinstance(payload, list):
        raise GeminiError("Gemini response was not a JSON array")
    return payload


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_range(raw: Any, parameter: str) -> Optional[ReferenceRange]:
    if isinstance(raw, dict) and _is_number(raw.get("low")) and _is_number(raw.get("high")):
        return ReferenceRange(low=raw["low"], high=raw["high"])
    known = lookup_reference(parameter)
    return known[1] if known else None


def normalize_ai_results(items: List[Any]) -> List[LabResult]:
    """Drop incomplete items and recompute status from value and range."""
    results: List[LabResult] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        parameter = str(item.get("parameter") or "").strip()
        raw_value = item.get("value")
        unit = str(item.get("unit") or "").strip()
        if not parameter or raw_value in (None, "") or not unit:
            continue
        reference = _coerce_range(item.get("range"), parameter)
        if reference is None:
            continue
        value = parse_number(str(raw_value).replace(",", "").strip())
        if value is not None:
            value_text = canonical_value(value)
            status = classify_status(value, reference)
        else:
            value_text = str(raw_value).strip()
            claimed = str(item.get("status") or "").strip()
            status = claimed if claimed in _ALLOWED_STATUSES else "Needs Attention"
        results.append(
            LabResult(parameter=parameter, value=value_text, unit=unit, range=reference, status=status)
        )
    return results


async def analyze_lab_report(text: str) -> List[LabResult]:
    prompt = ANALYSIS_PROMPT.format(reference_ranges=_reference_lines(), text=text)
    reply = await generate_content(prompt)
    results = normalize_ai_results(extract_json_array(reply))
    logger.info({"function": "gemini_analysis", "model": model_name(), "count": len(results)})
    return results


async def get_lab_insights(results: List[LabResult]) -> str:
    if not api_key():
        return NO_KEY_INSIGHT
    if not any(r.status != "Normal" for r in results):
        return ALL_NORMAL_INSIGHT
    lines = "\n".join(
        f"{r.parameter}: {r.value} {r.unit} ({r.status}) - Normal range: {r.range.low:g}-{r.range.high:g}"
        for r in results
    )
    try:
        return await generate_content(INSIGHTS_PROMPT.format(results=lines)) or INSIGHTS_UNAVAILABLE
    except GeminiError:
        logger.warning({"function": "gemini_insights", "error": "insights generation failed"})
        return INSIGHTS_UNAVAILABLE


__all__ = [
    "GeminiError",
    "analyze_lab_report",
    "extract_json_array",
    "generate_content",
    "get_lab_insights",
    "normalize_ai_results",
]
