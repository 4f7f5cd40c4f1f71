# labscan/routes/labs_routes.py
import logging
import os
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile

from labscan.schemas.labs import AnalysisResult, ParseTextIn, ParseTextOut, TrendOut
from labscan.services import report_pipeline
from labscan.services.lab_parser import parse_lab_results
from labscan.services.trends import generate_historical_data
from labscan.utils.rate_limit import PARSE_RATE_LIMIT, UPLOAD_RATE_LIMIT, limiter

logger = logging.getLogger("labscan")

router = APIRouter(prefix="/api", tags=["labs"])


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


MAX_FILE_MB = _env_int("MAX_FILE_MB", 10)

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/bmp",
    "text/plain",
}


@router.post("/ocr", response_model=AnalysisResult)
@limiter.limit(UPLOAD_RATE_LIMIT)
async def upload_lab_report(request: Request, file: Optional[UploadFile] = File(None)):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > MAX_FILE_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File size exceeds the {MAX_FILE_MB}MB limit")

    mt = (file.content_type or "").split(";")[0].strip().lower()
    if mt not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Please upload PDF, PNG, JPEG, or other supported image formats.",
        )

    logger.info({"function": "upload_lab_report", "content_type": mt, "size_bytes": len(data)})
    try:
        result = await report_pipeline.process_upload(data, file.filename or "upload", mt)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:
        logger.exception({"function": "upload_lab_report", "stage": "process_failed"})
        raise HTTPException(status_code=500, detail="Failed to process the uploaded file. Please try again.")
    return result


@router.post("/labs/parse", response_model=ParseTextOut)
@limiter.limit(PARSE_RATE_LIMIT)
async def parse_lab_text(request: Request, payload: ParseTextIn):
    results = parse_lab_results(payload.text)
    abnormal = sum(1 for r in results if r.status != "Normal")
    logger.info({"function": "lab_parse_summary", "parsed_count": len(results), "abnormal_count": abnormal})
    return ParseTextOut(results=results, count=len(results))


@router.get("/labs/trends/{parameter}", response_model=TrendOut)
def get_trend(parameter: str):
    return TrendOut(parameter=parameter, points=generate_historical_data(parameter))
