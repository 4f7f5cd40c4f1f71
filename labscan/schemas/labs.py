# labscan/schemas/labs.py
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

LabStatus = Literal["Normal", "Low", "High", "Needs Attention"]
AnalysisMethod = Literal["gemini", "basic", "basic_fallback"]


class ReferenceRange(BaseModel):
    """Inclusive low/high bounds considered clinically normal."""

    model_config = ConfigDict(frozen=True)

    low: float
    high: float


class LabResult(BaseModel):
    """A single extracted measurement."""

    parameter: str = Field(..., description="Display name of the measured quantity.")
    value: str = Field(..., description="Canonical decimal form of the parsed value.")
    unit: str = Field("", description="Unit of measure.")
    range: ReferenceRange
    status: LabStatus = "Normal"


class TrendPoint(BaseModel):
    date: str
    value: float


class TrendOut(BaseModel):
    parameter: str
    points: List[TrendPoint]


class ParseTextIn(BaseModel):
    text: str = Field(..., max_length=20000, description="Plain text extracted from a lab report.")


class ParseTextOut(BaseModel):
    results: List[LabResult]
    count: int


class AnalysisResult(BaseModel):
    """Response of the upload endpoint; keys match what the web client reads."""

    message: str
    results: List[LabResult]
    extractedText: str = ""
    analysisMethod: AnalysisMethod
    insights: str = ""
