# flake8: noqa
"""
Analyst package housing the export direction analysis for commodity trade data.

This package loads the commodity trade statistics dataset, aggregates one trade flow
into a category x year value matrix, derives year-over-year change, and trains a
random forest that predicts whether each category's exports rise or fall.
"""

from .config import PipelineConfig  # noqa: F401
from .errors import (  # noqa: F401
    DegenerateLabelError,
    EmptyResultError,
    MalformedInputError,
    TradeAnalysisError,
)
from .pipeline import PipelineResult, TradeDirectionPipeline  # noqa: F401
