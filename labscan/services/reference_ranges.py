"""Default reference ranges for the known lab parameters and status classification."""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from labscan.schemas.labs import ReferenceRange

# Placeholder for parameters picked up by the generic fallback pass.
GENERIC_RANGE = ReferenceRange(low=0, high=999999)

# Common adult ranges, keyed by the display name used in results.
DEFAULT_RANGES: Dict[str, Tuple[str, ReferenceRange]] = {
    "Hemoglobin": ("g/dL", ReferenceRange(low=12.0, high=16.0)),
    "White Blood Cell Count": ("cells/μL", ReferenceRange(low=4000, high=11000)),
    "Red Blood Cell Count": ("cells/μL", ReferenceRange(low=4.2, high=5.8)),
    "Platelet Count": ("cells/μL", ReferenceRange(low=150000, high=450000)),
    "Glucose": ("mg/dL", ReferenceRange(low=70, high=100)),
    "Cholesterol": ("mg/dL", ReferenceRange(low=0, high=200)),
    "HDL Cholesterol": ("mg/dL", ReferenceRange(low=40, high=100)),
    "LDL Cholesterol": ("mg/dL", ReferenceRange(low=0, high=100)),
    "Triglycerides": ("mg/dL", ReferenceRange(low=0, high=150)),
    "Creatinine": ("mg/dL", ReferenceRange(low=0.6, high=1.2)),
    "Blood Urea Nitrogen": ("mg/dL", ReferenceRange(low=7, high=20)),
    "ALT": ("U/L", ReferenceRange(low=7, high=45)),
    "AST": ("U/L", ReferenceRange(low=8, high=40)),
}

_NAME_ALIASES = {
    "hemoglobin": "Hemoglobin",
    "haemoglobin": "Hemoglobin",
    "hgb": "Hemoglobin",
    "hb": "Hemoglobin",
    "whitebloodcellcount": "White Blood Cell Count",
    "whitebloodcells": "White Blood Cell Count",
    "whitebloodcell": "White Blood Cell Count",
    "wbc": "White Blood Cell Count",
    "leukocytes": "White Blood Cell Count",
    "leucocytes": "White Blood Cell Count",
    "redbloodcellcount": "Red Blood Cell Count",
    "redbloodcells": "Red Blood Cell Count",
    "rbc": "Red Blood Cell Count",
    "plateletcount": "Platelet Count",
    "platelets": "Platelet Count",
    "platelet": "Platelet Count",
    "plt": "Platelet Count",
    "glucose": "Glucose",
    "bloodglucose": "Glucose",
    "fastingglucose": "Glucose",
    "cholesterol": "Cholesterol",
    "totalcholesterol": "Cholesterol",
    "hdl": "HDL Cholesterol",
    "hdlcholesterol": "HDL Cholesterol",
    "ldl": "LDL Cholesterol",
    "ldlcholesterol": "LDL Cholesterol",
    "triglycerides": "Triglycerides",
    "triglyceride": "Triglycerides",
    "creatinine": "Creatinine",
    "bun": "Blood Urea Nitrogen",
    "bloodureanitrogen": "Blood Urea Nitrogen",
    "urea": "Blood Urea Nitrogen",
    "alt": "ALT",
    "sgpt": "ALT",
    "alanineaminotransferase": "ALT",
    "ast": "AST",
    "sgot": "AST",
    "aspartateaminotransferase": "AST",
}


def _normalize_name(name: str) -> str:
    return "".join(ch for ch in (name or "").lower() if ch.isalnum())


def classify_status(value: float, reference: ReferenceRange) -> str:
    """Return 'Low', 'High' or 'Normal' for a value against inclusive bounds."""
    if value < reference.low:
        return "Low"
    if value > reference.high:
        return "High"
    return "Normal"


def canonical_name(name: str) -> Optional[str]:
    """Map a label such as 'hgb' or 'White Blood Cells' to its registry name."""
    return _NAME_ALIASES.get(_normalize_name(name))


def lookup_reference(name: str) -> Optional[Tuple[str, ReferenceRange]]:
    """Resolve a parameter name or common alias to its (default unit, range)."""
    canonical = canonical_name(name)
    if not canonical:
        return None
    return DEFAULT_RANGES[canonical]


__all__ = [
    "DEFAULT_RANGES",
    "GENERIC_RANGE",
    "canonical_name",
    "classify_status",
    "lookup_reference",
]
