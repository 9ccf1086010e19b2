"""
stagels Utilities Package.

Common utilities for error handling and source locations.
"""

from stagels.utils.errors import (
    AnalyzerLoadError,
    SourceLocation,
    StagelsError,
    StaleDocumentError,
)

__all__ = [
    "AnalyzerLoadError",
    "SourceLocation",
    "StagelsError",
    "StaleDocumentError",
]
