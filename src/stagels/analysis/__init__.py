"""
Analysis collaborators for the stagels language server.

The diagnostics layer consumes the output of three analysis stages. This
package holds the shapes of that output plus a reference tokenizer.
"""

from stagels.analysis.parser import DelimiterParser, parse_document
from stagels.analysis.reports import (
    DiagnosticLevel,
    Frame,
    FullAnalysisResult,
    FullAnalyzer,
    InferenceErrorReport,
    ParseResult,
    PostProcessor,
    RawReport,
    ReportKind,
    SyntaxDiagnostic,
    ToplevelErrorReport,
)
from stagels.analysis.source import SourceFile

__all__ = [
    "DelimiterParser",
    "DiagnosticLevel",
    "Frame",
    "FullAnalysisResult",
    "FullAnalyzer",
    "InferenceErrorReport",
    "ParseResult",
    "PostProcessor",
    "RawReport",
    "ReportKind",
    "SourceFile",
    "SyntaxDiagnostic",
    "ToplevelErrorReport",
    "parse_document",
]
