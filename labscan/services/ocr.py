"""File-to-text helpers (PDF/image/text)."""
from __future__ import annotations

import io
import logging
from typing import Tuple

import pytesseract
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger("labscan")

SUPPORTED_IMAGE_EXT = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tiff", ".webp"}


def _is_pdf(filename: str, content_type: str) -> bool:
    return content_type == "application/pdf" or filename.endswith(".pdf")


def _is_image(filename: str, content_type: str) -> bool:
    return content_type.startswith("image/") or any(filename.endswith(ext) for ext in SUPPORTED_IMAGE_EXT)


def extract_text_from_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as exc:
        raise ValueError("Failed to extract text from PDF") from exc
    return "\n".join(pages).strip()


def extract_text_from_image(data: bytes, lang: str = "eng") -> str:
    try:
        img = Image.open(io.BytesIO(data))
    except UnidentifiedImageError as exc:
        raise ValueError("Unreadable image file") from exc
    try:
        return pytesseract.image_to_string(img, lang=lang)
    except pytesseract.TesseractError as exc:
        raise ValueError(f"OCR failed: {exc}") from exc


def extract_text_from_bytes(data: bytes, filename: str, content_type: str) -> Tuple[str, str]:
    """Return (text, source) where source is 'pdf', 'ocr' or 'text'."""
    lowered = (filename or "").lower()
    mt = (content_type or "").lower()

    if _is_pdf(lowered, mt):
        text = extract_text_from_pdf(data)
        logger.debug({"function": "extract_text", "source": "pdf", "chars": len(text)})
        return text, "pdf"

    if _is_image(lowered, mt):
        text = extract_text_from_image(data)
        logger.debug({"function": "extract_text", "source": "ocr", "chars": len(text)})
        return text, "ocr"

    if mt.startswith("text/") or lowered.endswith(".txt"):
        try:
            return data.decode("utf-8"), "text"
        except UnicodeDecodeError as exc:
            raise ValueError("Unable to decode file as UTF-8 text") from exc

    raise ValueError(f"Unsupported file type: {mt or 'unknown'}")


__all__ = ["extract_text_from_bytes", "extract_text_from_pdf", "extract_text_from_image"]
