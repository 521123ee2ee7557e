"""Background generation task pipeline for quiz and curriculum content."""

__version__ = "0.1.0"
