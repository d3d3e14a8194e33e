"""
Exception hierarchy shared by every stage of the export analysis pipeline.
"""

from __future__ import annotations


class TradeAnalysisError(Exception):
    """Base error; ``stage`` names the pipeline step that failed."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class MalformedInputError(TradeAnalysisError, ValueError):
    """A required column is missing or a field cannot be parsed."""


class EmptyResultError(TradeAnalysisError):
    """A stage produced (or received) zero rows."""


class DegenerateLabelError(TradeAnalysisError):
    """Training labels carry a single class, so there is nothing to contrast."""
