# Mark services as a package and expose the modules routes and tests monkeypatch.

from . import gemini as gemini  # noqa: F401
from . import ocr as ocr  # noqa: F401
from . import report_pipeline as report_pipeline  # noqa: F401

__all__ = [
    "gemini",
    "ocr",
    "report_pipeline",
]
