"""Campaign detector: OCR-based campaign matching with text alignment highlighting."""

__version__ = "1.0.0"
