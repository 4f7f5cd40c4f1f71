"""End-to-end lab report processing helpers."""
from __future__ import annotations

import logging
import os

from starlette.concurrency import run_in_threadpool

from labscan.schemas.labs import AnalysisResult
from labscan.services import gemini
from labscan.services.lab_parser import parse_lab_results
from labscan.services.ocr import extract_text_from_bytes

logger = logging.getLogger("labscan")

PREVIEW_CHARS = 500
NO_RESULTS_MESSAGE = "No lab parameters found in the uploaded file."
NO_RESULTS_INSIGHT = "Unable to extract any lab parameters from this document."


def ai_analysis_enabled() -> bool:
    flag = (os.getenv("AI_ANALYSIS_ENABLED", "true") or "true").strip().lower()
    return flag not in {"0", "false", "off", "no"} and bool(gemini.api_key())


def _preview(text: str) -> str:
    return text[:PREVIEW_CHARS] + "..."


async def analyze_text(text: str) -> AnalysisResult:
    """Run the Gemini path when configured, otherwise (or on failure) the rule-based parser."""
    insights = ""
    if ai_analysis_enabled():
        try:
            results = await gemini.analyze_lab_report(text)
            method = "gemini"
            if results:
                insights = await gemini.get_lab_insights(results)
        except gemini.GeminiError as exc:
            logger.warning({"function": "lab_analysis", "stage": "gemini_failed", "error": str(exc)})
            results = parse_lab_results(text)
            method = "basic_fallback"
    else:
        results = parse_lab_results(text)
        method = "basic"

    logger.info({"function": "lab_analysis", "method": method, "count": len(results)})

    if not results:
        return AnalysisResult(
            message=NO_RESULTS_MESSAGE,
            results=[],
            extractedText=_preview(text),
            analysisMethod=method,
            insights=NO_RESULTS_INSIGHT,
        )

    label = "AI analysis" if method == "gemini" else "basic parsing"
    return AnalysisResult(
        message=f"Successfully extracted {len(results)} lab parameters using {label}",
        results=results,
        extractedText=_preview(text),
        analysisMethod=method,
        insights=insights,
    )


async def process_upload(data: bytes, filename: str, content_type: str) -> AnalysisResult:
    text, source = await run_in_threadpool(extract_text_from_bytes, data, filename, content_type)
    if not text or not text.strip():
        raise ValueError(
            "Could not extract text from the uploaded file. Please ensure the file contains readable text."
        )
    logger.info({"function": "extract_text", "source": source, "chars": len(text)})
    return await analyze_text(text)


__all__ = ["analyze_text", "process_upload", "ai_analysis_enabled"]
