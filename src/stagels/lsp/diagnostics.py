"""
Diagnostic generation for stagels LSP.

This module converts the raw output of the three analysis stages (syntax,
top-level loading, inference) into LSP diagnostics, and buckets full
analysis results by the document each report belongs to.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from lsprotocol import types

from stagels.analysis.reports import (
    DiagnosticLevel,
    Frame,
    FullAnalysisResult,
    InferenceErrorReport,
    ParseResult,
    PostProcessor,
    RawReport,
    ReportKind,
    SyntaxDiagnostic,
    ToplevelErrorReport,
)
from stagels.analysis.source import SourceFile
from stagels.lsp.positions import normalize_line, to_position, whole_line_range
from stagels.lsp.resolver import DocumentResolver

logger = logging.getLogger(__name__)

SYNTAX_DIAGNOSTIC_SOURCE = "stagels-syntax"
TOPLEVEL_DIAGNOSTIC_SOURCE = "stagels-toplevel"
INFERENCE_DIAGNOSTIC_SOURCE = "stagels-inference"

_SEVERITY_MAP = {
    DiagnosticLevel.ERROR: types.DiagnosticSeverity.Error,
    DiagnosticLevel.WARNING: types.DiagnosticSeverity.Warning,
    DiagnosticLevel.NOTE: types.DiagnosticSeverity.Information,
}


# =============================================================================
# Syntax
# =============================================================================


def syntax_diagnostic_to_diagnostic(
    diagnostic: SyntaxDiagnostic, source: SourceFile
) -> types.Diagnostic:
    """
    Convert a parser diagnostic into an LSP diagnostic.

    Args:
        diagnostic: The parser diagnostic
        source: The buffer its byte offsets point into

    Returns:
        LSP diagnostic spanning the reported bytes
    """
    return types.Diagnostic(
        range=types.Range(
            start=to_position(source, diagnostic.first_byte),
            end=to_position(source, diagnostic.last_byte),
        ),
        severity=_SEVERITY_MAP.get(diagnostic.level, types.DiagnosticSeverity.Hint),
        message=diagnostic.message,
        source=SYNTAX_DIAGNOSTIC_SOURCE,
    )


def parse_result_to_diagnostics(parse: ParseResult) -> list[types.Diagnostic]:
    """Convert every syntax diagnostic of a parse into a new list."""
    diagnostics: list[types.Diagnostic] = []
    extend_parse_result_diagnostics(diagnostics, parse)
    return diagnostics


def extend_parse_result_diagnostics(
    diagnostics: list[types.Diagnostic], parse: ParseResult
) -> None:
    """Append the syntax diagnostics of a parse to an existing list."""
    for diagnostic in parse.diagnostics:
        diagnostics.append(syntax_diagnostic_to_diagnostic(diagnostic, parse.source))


# =============================================================================
# Top-level
# =============================================================================


def toplevel_report_to_diagnostic(
    report: ToplevelErrorReport, postprocessor: PostProcessor
) -> types.Diagnostic:
    """
    Convert a loading failure into an LSP diagnostic.

    Parse failures found while loading are converted exactly like syntax
    diagnostics. Every other loading failure is fatal to its unit, so it is
    reported as an error over the whole offending line.
    """
    if report.syntax is not None:
        if report.source is None:
            raise ValueError("top-level parse failure is missing its source buffer")
        return syntax_diagnostic_to_diagnostic(report.syntax, report.source)

    return types.Diagnostic(
        range=whole_line_range(normalize_line(report.line)),
        severity=types.DiagnosticSeverity.Error,
        message=postprocessor(report.render()),
        source=TOPLEVEL_DIAGNOSTIC_SOURCE,
    )


# =============================================================================
# Inference
# =============================================================================


def frame_to_range(frame: Frame) -> types.Range:
    return whole_line_range(normalize_line(frame.line))


def inference_report_to_diagnostic(
    report: InferenceErrorReport,
    postprocessor: PostProcessor,
    resolver: DocumentResolver,
) -> types.Diagnostic:
    """
    Convert an inference failure into an LSP diagnostic.

    The error site (first frame) gives the range. Each caller frame becomes
    one related-information entry pointing at the caller's line, closest
    caller first. Callers without a known file are skipped.

    Args:
        report: The inference report
        postprocessor: Rewrites virtual module names in rendered text
        resolver: Resolves caller frame files to URIs

    Returns:
        LSP diagnostic with the call chain attached
    """
    topframe = report.frames[0]

    related_information: list[types.DiagnosticRelatedInformation] = []
    for frame in report.frames[1:]:
        uri = resolver.resolve(frame.file)
        if uri is None:
            continue
        related_information.append(
            types.DiagnosticRelatedInformation(
                location=types.Location(uri=uri, range=frame_to_range(frame)),
                message=postprocessor(report.render_frame_signature(frame)),
            )
        )

    return types.Diagnostic(
        range=frame_to_range(topframe),
        severity=report.severity(),
        message=postprocessor(report.render()),
        source=INFERENCE_DIAGNOSTIC_SOURCE,
        related_information=related_information,
    )


# =============================================================================
# Dispatch and bucketing
# =============================================================================


def report_filename(report: RawReport) -> Optional[str]:
    """Get the file a full-analysis report should be attributed to."""
    if report.kind is ReportKind.TOPLEVEL:
        return report.file
    if report.kind is ReportKind.INFERENCE:
        return report.frames[0].file
    return None


def report_to_diagnostic(
    report: RawReport,
    postprocessor: PostProcessor,
    resolver: DocumentResolver,
    source: Optional[SourceFile] = None,
) -> types.Diagnostic:
    """
    Convert any raw report into an LSP diagnostic.

    ``source`` is required for syntax diagnostics and ignored otherwise.
    """
    if report.kind is ReportKind.SYNTAX:
        if source is None:
            raise ValueError("syntax diagnostics need their source buffer")
        return syntax_diagnostic_to_diagnostic(report, source)
    if report.kind is ReportKind.TOPLEVEL:
        return toplevel_report_to_diagnostic(report, postprocessor)
    return inference_report_to_diagnostic(report, postprocessor, resolver)


def analysis_result_to_diagnostics(
    result: FullAnalysisResult,
    resolver: DocumentResolver,
    file_uris: Optional[Iterable[str]] = None,
) -> dict[str, list[types.Diagnostic]]:
    """
    Bucket the reports of a full analysis pass by document URI.

    Every analyzed file gets a bucket, even an empty one, so that documents
    whose problems were fixed are still published. Reports that cannot be
    attributed to a document are dropped.

    Args:
        result: The full analysis result
        resolver: Resolves reported filenames to URIs
        file_uris: URIs to seed buckets for; defaults to the analyzed files

    Returns:
        Mapping from document URI to its diagnostics, in report order
    """
    if file_uris is None:
        file_uris = (resolver.resolve(filename) for filename in result.analyzed_files)
    uri2diagnostics: dict[str, list[types.Diagnostic]] = {
        uri: [] for uri in file_uris if uri is not None
    }
    extend_analysis_result_diagnostics(uri2diagnostics, result, resolver)
    return uri2diagnostics


def extend_analysis_result_diagnostics(
    uri2diagnostics: dict[str, list[types.Diagnostic]],
    result: FullAnalysisResult,
    resolver: DocumentResolver,
) -> None:
    """Append the reports of a full analysis pass to existing buckets."""
    reports: list[RawReport] = [
        *result.toplevel_error_reports,
        *result.inference_error_reports,
    ]
    for report in reports:
        uri = resolver.resolve(report_filename(report))
        if uri is None:
            logger.debug("Dropping unattributable %s report", report.kind.value)
            continue
        diagnostic = report_to_diagnostic(report, result.postprocessor, resolver)
        uri2diagnostics.setdefault(uri, []).append(diagnostic)
