"""LabScan: structured lab results from OCR'd lab report text."""

__version__ = "0.1.0"
