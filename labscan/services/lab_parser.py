"""Lab report text parsing: known-parameter rules plus a generic fallback pass."""
from __future__ import annotations

import math
import re
from typing import Iterable, List, Match, NamedTuple, Optional, Pattern

from labscan.schemas.labs import LabResult, ReferenceRange
from labscan.services.reference_ranges import (
    DEFAULT_RANGES,
    GENERIC_RANGE,
    canonical_name,
    classify_status,
)

# Cap on the combined number of results (known + generic) for one text.
MAX_RESULTS = 20
MIN_LABEL_LENGTH = 3
# floats above this no longer hold every integer exactly
_EXACT_INT_LIMIT = 1e16


class ParameterRule(NamedTuple):
    name: str
    pattern: Pattern[str]
    unit: str
    reference: ReferenceRange
    # match is discarded when the text before it on the line ends with this
    reject_before: Optional[Pattern[str]] = None


# label [ (alias) ] [:|-] value
_VALUE = r"(?:\s*\([^)\n]{1,40}\))?\s*[:\-]?\s*(?P<value>[0-9.]+)\s*"
# x10^3, ×10^6, 10E3, x10³ ... consumed but never part of the value
_EXPONENT = r"(?:(?:[x×*]\s*)?10\s*(?:(?:\^|e|\*\*?)\s*\d{1,2}|[³⁶⁹]))?\s*"
_CELL_UNIT = r"(?:cells\s*)?/\s*(?:[uµμ]l|mm3|mm³|cmm)"
_MASS_UNIT = r"(?P<unit>mg/dl|mmol/l)"
_ENZYME_UNIT = r"(?P<unit>u/l|iu/l|units/l)"


def _rule(name: str, labels: str, tail: str, reject_before: Optional[str] = None) -> ParameterRule:
    unit, reference = DEFAULT_RANGES[name]
    pattern = re.compile(labels + _VALUE + tail, re.IGNORECASE)
    reject = re.compile(reject_before, re.IGNORECASE) if reject_before else None
    return ParameterRule(name, pattern, unit, reference, reject)


# Declaration order is output order.
PARAMETER_RULES = (
    _rule(
        "Hemoglobin",
        r"\b(?:hemoglobin|haemoglobin|hgb|hb)\b",
        r"(?P<unit>g/dl|gm/dl)",
    ),
    _rule(
        "White Blood Cell Count",
        r"\b(?:wbc|white\s+blood\s+cells?|leu[ck]ocytes?)(?:\s+count)?\b",
        _EXPONENT + _CELL_UNIT,
    ),
    _rule(
        "Red Blood Cell Count",
        r"\b(?:rbc|red\s+blood\s+cells?)(?:\s+count)?\b",
        _EXPONENT + _CELL_UNIT,
    ),
    _rule(
        "Platelet Count",
        r"\b(?:platelets?|plt)(?:\s+count)?\b",
        _EXPONENT + _CELL_UNIT,
    ),
    _rule(
        "Glucose",
        r"\b(?:blood\s+glucose|fasting\s+glucose|glucose|bg)\b",
        _MASS_UNIT,
    ),
    _rule(
        "Cholesterol",
        r"\b(?:total\s+cholesterol|cholesterol(?:,?\s*total)?)\b",
        _MASS_UNIT,
        reject_before=r"\b(?:hdl|v?ldl)[\s\-]*$",
    ),
    _rule(
        "HDL Cholesterol",
        r"\b(?:hdl[\s\-]*cholesterol|hdl(?:-c)?)\b",
        _MASS_UNIT,
    ),
    _rule(
        "LDL Cholesterol",
        r"\b(?:ldl[\s\-]*cholesterol|ldl(?:-c)?)\b",
        _MASS_UNIT,
    ),
    _rule(
        "Triglycerides",
        r"\b(?:triglycerides?|tg)\b",
        _MASS_UNIT,
    ),
    _rule(
        "Creatinine",
        r"\b(?:creatinine|creat)\b",
        r"(?P<unit>mg/dl|[uµμ]mol/l)",
    ),
    _rule(
        "Blood Urea Nitrogen",
        r"\b(?:blood\s+urea\s+nitrogen|bun|urea)\b",
        _MASS_UNIT,
    ),
    _rule(
        "ALT",
        r"\b(?:alanine\s+aminotransferase|alt|sgpt)\b",
        _ENZYME_UNIT,
    ),
    _rule(
        "AST",
        r"\b(?:aspartate\s+aminotransferase|ast|sgot)\b",
        _ENZYME_UNIT,
    ),
)

# "<label>: <number> <unit>" anywhere in the text, colon optional. The label
# starts on a word boundary, stays on one line and is bounded so every start
# position does constant work.
GENERIC_PATTERN = re.compile(
    r"\b(?P<label>[A-Za-z][A-Za-z \t]{0,79})\s*:?\s*(?P<value>[0-9.]+)\s*(?P<unit>[A-Za-z/μµ%]+)"
)


def parse_number(raw: str) -> Optional[float]:
    """Parse a captured numeric token; None when it is not a finite decimal."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def canonical_value(value: float) -> str:
    """Shortest decimal form: 110.0 -> '110', 13.50 -> '13.5'."""
    if value.is_integer() and abs(value) < _EXACT_INT_LIMIT:
        return str(int(value))
    return repr(value)


def _first_accepted(rule: ParameterRule, line: str) -> Optional[Match[str]]:
    for match in rule.pattern.finditer(line):
        if rule.reject_before is not None and rule.reject_before.search(line[: match.start()]):
            continue
        return match
    return None


def _match_rule(rule: ParameterRule, lines: List[str]) -> Optional[LabResult]:
    for line in lines:
        match = _first_accepted(rule, line)
        if match is None:
            continue
        value = parse_number(match.group("value"))
        if value is None:
            continue
        unit = (match.groupdict().get("unit") or "").strip() or rule.unit
        return LabResult(
            parameter=rule.name,
            value=canonical_value(value),
            unit=unit,
            range=rule.reference,
            status=classify_status(value, rule.reference),
        )
    return None


def extract_known(text: str) -> List[LabResult]:
    """Run every registry rule over the text; first matching line wins per rule."""
    lines = (text or "").splitlines()
    results: List[LabResult] = []
    if not lines:
        return results
    for rule in PARAMETER_RULES:
        result = _match_rule(rule, lines)
        if result is not None:
            results.append(result)
    return results


def _overlaps(label: str, names: Iterable[str]) -> bool:
    lowered = label.lower()
    canonical = canonical_name(label)
    for name in names:
        existing = name.lower()
        if lowered in existing or existing in lowered:
            return True
        if canonical is not None and canonical == canonical_name(name):
            return True
    return False


def extract_generic(text: str, already_found: Iterable[str] = ()) -> List[LabResult]:
    """Pick up unregistered "label: value unit" fragments not already reported.

    ``already_found`` holds the names emitted by :func:`extract_known`. Names
    accepted here are added to the running set so later fragments are checked
    against them too. The combined count never exceeds ``MAX_RESULTS``.
    """
    seen = list(already_found)
    results: List[LabResult] = []
    if len(seen) >= MAX_RESULTS:
        return results
    for match in GENERIC_PATTERN.finditer(text or ""):
        label = " ".join(match.group("label").split())
        if len(label) < MIN_LABEL_LENGTH or _overlaps(label, seen):
            continue
        value = parse_number(match.group("value"))
        if value is None:
            continue
        results.append(
            LabResult(
                parameter=label,
                value=canonical_value(value),
                unit=match.group("unit"),
                range=GENERIC_RANGE,
                status="Normal",
            )
        )
        seen.append(label)
        if len(seen) >= MAX_RESULTS:
            break
    return results


def parse_lab_results(text: str) -> List[LabResult]:
    """Known-parameter pass followed by the generic fallback pass."""
    known = extract_known(text)
    generic = extract_generic(text, [r.parameter for r in known])
    return known + generic


__all__ = [
    "MAX_RESULTS",
    "PARAMETER_RULES",
    "ParameterRule",
    "canonical_value",
    "extract_generic",
    "extract_known",
    "parse_lab_results",
    "parse_number",
]
