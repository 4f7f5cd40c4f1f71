import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Keep the AI path off unless a test opts in.
os.environ["GEMINI_API_KEY"] = ""

# Ensure the project root is on sys.path so `import labscan` works when running
# pytest from the repository root without an install.
ROOT_DIR = Path(__file__).resolve().parents[2]  # repository root
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from labscan.app import app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    # ensure limiter state fresh each test
    app.state.limiter.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def no_gemini(monkeypatch):
    # Ensure no outbound calls
    monkeypatch.setenv("GEMINI_API_KEY", "")


@pytest.fixture
def with_gemini_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("AI_ANALYSIS_ENABLED", "true")


@pytest.fixture
def mock_ocr(monkeypatch):
    # Tesseract image OCR always returns fixed text
    monkeypatch.setattr("PIL.Image.open", lambda fp: object())
    monkeypatch.setattr(
        "pytesseract.image_to_string",
        lambda img, lang=None: "Hemoglobin: 11.2 g/dL\nGlucose: 92 mg/dL\n",
    )

    # PdfReader to return one page with text
    class _Pg:
        def extract_text(self):
            return "Creatinine: 1.5 mg/dL"

    class _Reader:
        def __init__(self, *_a, **_k):
            self.pages = [_Pg()]

    import labscan.services.ocr as ocr
    monkeypatch.setattr(ocr, "PdfReader", _Reader)
