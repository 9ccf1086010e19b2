"""Tests for the stagels LSP diagnostic normalizer."""

import pytest
from lsprotocol.types import DiagnosticSeverity

from stagels.analysis.reports import (
    DiagnosticLevel,
    Frame,
    FullAnalysisResult,
    InferenceErrorReport,
    PostProcessor,
    SyntaxDiagnostic,
    ToplevelErrorReport,
)
from stagels.analysis.source import SourceFile
from stagels.lsp.diagnostics import (
    INFERENCE_DIAGNOSTIC_SOURCE,
    SYNTAX_DIAGNOSTIC_SOURCE,
    TOPLEVEL_DIAGNOSTIC_SOURCE,
    analysis_result_to_diagnostics,
    extend_parse_result_diagnostics,
    inference_report_to_diagnostic,
    parse_result_to_diagnostics,
    report_to_diagnostic,
    syntax_diagnostic_to_diagnostic,
    toplevel_report_to_diagnostic,
)
from stagels.lsp.positions import whole_line_range


class TestSyntaxConversion:
    """Test suite for syntax diagnostic conversion."""

    def test_byte_span_maps_to_columns(self) -> None:
        """Test that a byte span on one line maps to its columns on line 0."""
        source = SourceFile("result = frobnicate(1, 2)")
        raw = SyntaxDiagnostic(10, 15, DiagnosticLevel.ERROR, "bad call")

        diagnostic = syntax_diagnostic_to_diagnostic(raw, source)

        assert diagnostic.range.start.line == 0
        assert diagnostic.range.end.line == 0
        assert diagnostic.range.start.character == source.source_location(10).column
        assert diagnostic.range.end.character == source.source_location(15).column

    def test_span_across_lines(self) -> None:
        """Test that a span may start and end on different lines."""
        source = SourceFile("(\n  x\n")
        raw = SyntaxDiagnostic(0, 4, DiagnosticLevel.ERROR, "oops")

        diagnostic = syntax_diagnostic_to_diagnostic(raw, source)

        assert diagnostic.range.start.line == 0
        assert diagnostic.range.end.line == 1

    @pytest.mark.parametrize(
        ("level", "severity"),
        [
            (DiagnosticLevel.ERROR, DiagnosticSeverity.Error),
            (DiagnosticLevel.WARNING, DiagnosticSeverity.Warning),
            (DiagnosticLevel.NOTE, DiagnosticSeverity.Information),
            (DiagnosticLevel.HELP, DiagnosticSeverity.Hint),
        ],
    )
    def test_severity_table(self, level: DiagnosticLevel, severity: DiagnosticSeverity) -> None:
        """Test the fixed parser level to severity mapping."""
        raw = SyntaxDiagnostic(0, 0, level, "msg")

        diagnostic = syntax_diagnostic_to_diagnostic(raw, SourceFile("x"))

        assert diagnostic.severity == severity

    def test_source_and_message(self) -> None:
        """Test that the syntax source label and message are set."""
        raw = SyntaxDiagnostic(0, 0, DiagnosticLevel.ERROR, "unexpected token")

        diagnostic = syntax_diagnostic_to_diagnostic(raw, SourceFile("x"))

        assert diagnostic.source == SYNTAX_DIAGNOSTIC_SOURCE
        assert diagnostic.message == "unexpected token"
        assert not diagnostic.related_information

    def test_parse_result_conversion(self, parse) -> None:
        """Test converting every diagnostic of a parse."""
        result = parse("f(x\ny)]\n")

        diagnostics = parse_result_to_diagnostics(result)

        assert len(diagnostics) == len(result.diagnostics)
        assert all(d.source == SYNTAX_DIAGNOSTIC_SOURCE for d in diagnostics)

    def test_extend_appends_in_place(self, parse) -> None:
        """Test that the in-place variant keeps existing entries."""
        existing = parse_result_to_diagnostics(parse("("))

        extend_parse_result_diagnostics(existing, parse(")"))

        assert len(existing) == 2
        assert "unclosed" in existing[0].message
        assert "unexpected" in existing[1].message


class TestToplevelConversion:
    """Test suite for top-level report conversion."""

    def test_whole_line_error(self) -> None:
        """Test that a loading failure covers its whole line as an error."""
        report = ToplevelErrorReport(file="a.stg", line=3, message="UndefVarError")

        diagnostic = toplevel_report_to_diagnostic(report, PostProcessor())

        assert diagnostic.range == whole_line_range(2)
        assert diagnostic.severity == DiagnosticSeverity.Error
        assert diagnostic.source == TOPLEVEL_DIAGNOSTIC_SOURCE

    def test_unknown_line_stays_at_zero(self) -> None:
        """Test that line 0 is not turned into a negative line."""
        report = ToplevelErrorReport(file="a.stg", line=0, message="load failed")

        diagnostic = toplevel_report_to_diagnostic(report, PostProcessor())

        assert diagnostic.range.start.line == 0

    def test_message_is_postprocessed(self) -> None:
        """Test that virtual module names are rewritten in the message."""
        report = ToplevelErrorReport(
            file="a.stg", line=1, message="error in VirtualModule7.load"
        )

        diagnostic = toplevel_report_to_diagnostic(
            report, PostProcessor({"Shapes": "VirtualModule7"})
        )

        assert diagnostic.message == "error in Shapes.load"

    def test_nested_parse_failure_uses_syntax_path(self) -> None:
        """Test that parse failures found while loading convert as syntax."""
        source = SourceFile("x = (1 +\n")
        syntax = SyntaxDiagnostic(4, 4, DiagnosticLevel.WARNING, "unclosed")
        report = ToplevelErrorReport(file="a.stg", line=7, syntax=syntax, source=source)

        diagnostic = toplevel_report_to_diagnostic(report, PostProcessor())

        assert diagnostic == syntax_diagnostic_to_diagnostic(syntax, source)
        assert diagnostic.source == SYNTAX_DIAGNOSTIC_SOURCE
        assert diagnostic.severity == DiagnosticSeverity.Warning

    def test_nested_parse_failure_without_source(self) -> None:
        """Test that a wrapped parse failure needs its buffer."""
        syntax = SyntaxDiagnostic(0, 0, DiagnosticLevel.ERROR, "bad")
        report = ToplevelErrorReport(file="a.stg", line=1, syntax=syntax)

        with pytest.raises(ValueError):
            toplevel_report_to_diagnostic(report, PostProcessor())


class TestInferenceConversion:
    """Test suite for inference report conversion."""

    def test_call_chain_scenario(self, resolver, inference_report, workspace_uri) -> None:
        """Test an error in a.stg line 5 called from b.stg line 12."""
        report = inference_report(("a.stg", 5), ("b.stg", 12))

        diagnostic = inference_report_to_diagnostic(report, PostProcessor(), resolver)

        assert diagnostic.range == whole_line_range(4)
        assert diagnostic.severity == DiagnosticSeverity.Error
        assert diagnostic.source == INFERENCE_DIAGNOSTIC_SOURCE
        assert len(diagnostic.related_information) == 1
        related = diagnostic.related_information[0]
        assert related.location.uri == workspace_uri("b.stg")
        assert related.location.range == whole_line_range(11)
        assert related.message == "caller_1(x::Int)"

    def test_related_information_order(self, resolver, inference_report) -> None:
        """Test that callers are listed closest first."""
        report = inference_report(("a.stg", 1), ("b.stg", 2), ("c.stg", 3), ("d.stg", 4))

        diagnostic = inference_report_to_diagnostic(report, PostProcessor(), resolver)

        lines = [info.location.range.start.line for info in diagnostic.related_information]
        assert lines == [1, 2, 3]

    def test_unknown_caller_file_skipped(self, resolver, inference_report) -> None:
        """Test that caller frames without a file are left out."""
        report = inference_report(("a.stg", 1), (None, 2), ("c.stg", 3))

        diagnostic = inference_report_to_diagnostic(report, PostProcessor(), resolver)

        assert len(diagnostic.related_information) == 1
        assert diagnostic.related_information[0].location.range.start.line == 2

    def test_error_site_only(self, resolver, inference_report) -> None:
        """Test that a report without callers has no related information."""
        diagnostic = inference_report_to_diagnostic(
            inference_report(("a.stg", 9)), PostProcessor(), resolver
        )

        assert diagnostic.related_information == []

    def test_possible_error_is_warning(self, resolver, inference_report) -> None:
        """Test that the report classifies its own severity."""
        report = inference_report(("a.stg", 1), definite=False)

        diagnostic = inference_report_to_diagnostic(report, PostProcessor(), resolver)

        assert diagnostic.severity == DiagnosticSeverity.Warning

    def test_unknown_line_frame(self, resolver, inference_report) -> None:
        """Test that frames at line 0 stay on line 0."""
        report = inference_report(("a.stg", 0), ("b.stg", 0))

        diagnostic = inference_report_to_diagnostic(report, PostProcessor(), resolver)

        assert diagnostic.range.start.line == 0
        assert diagnostic.related_information[0].location.range.start.line == 0

    def test_message_and_signatures_postprocessed(self, resolver) -> None:
        """Test that rendered text never leaks virtual module names."""
        report = InferenceErrorReport(
            frames=(
                Frame("a.stg", 2, signature="VirtualModule1.f(x)"),
                Frame("b.stg", 3, signature="VirtualModule1.g(y)"),
            ),
            message="no method VirtualModule1.h",
        )
        postprocessor = PostProcessor({"Main": "VirtualModule1"})

        diagnostic = inference_report_to_diagnostic(report, postprocessor, resolver)

        assert diagnostic.message == "no method Main.h"
        assert diagnostic.related_information[0].message == "Main.g(y)"

    def test_custom_renderers(self, resolver) -> None:
        """Test that report subclasses control rendering and severity."""

        class HintReport(InferenceErrorReport):
            def severity(self) -> DiagnosticSeverity:
                return DiagnosticSeverity.Hint

            def render(self) -> str:
                return f"hint: {self.message}"

            def render_frame_signature(self, frame: Frame) -> str:
                return f"{frame.signature} @ {frame.file}:{frame.line}"

        report = HintReport(
            frames=(Frame("a.stg", 1), Frame("b.stg", 2, signature="g()")),
            message="consider a type annotation",
        )

        diagnostic = inference_report_to_diagnostic(report, PostProcessor(), resolver)

        assert diagnostic.severity == DiagnosticSeverity.Hint
        assert diagnostic.message == "hint: consider a type annotation"
        assert diagnostic.related_information[0].message == "g() @ b.stg:2"


class TestReportDispatch:
    """Test suite for dispatch over the report variants."""

    def test_dispatches_on_kind(self, resolver, inference_report) -> None:
        """Test that each variant reaches its converter."""
        postprocessor = PostProcessor()
        source = SourceFile("x")

        syntax = report_to_diagnostic(
            SyntaxDiagnostic(0, 0, DiagnosticLevel.ERROR, "s"), postprocessor, resolver, source
        )
        toplevel = report_to_diagnostic(
            ToplevelErrorReport(file="a.stg", line=1, message="t"), postprocessor, resolver
        )
        inference = report_to_diagnostic(inference_report(("a.stg", 1)), postprocessor, resolver)

        assert syntax.source == SYNTAX_DIAGNOSTIC_SOURCE
        assert toplevel.source == TOPLEVEL_DIAGNOSTIC_SOURCE
        assert inference.source == INFERENCE_DIAGNOSTIC_SOURCE

    def test_syntax_needs_source(self, resolver) -> None:
        """Test that syntax dispatch without a buffer fails loudly."""
        with pytest.raises(ValueError):
            report_to_diagnostic(
                SyntaxDiagnostic(0, 0, DiagnosticLevel.ERROR, "s"), PostProcessor(), resolver
            )


class TestAnalysisResultBucketing:
    """Test suite for bucketing a full analysis result by document."""

    def test_reports_land_in_their_documents(
        self, resolver, mixed_result, workspace_uri
    ) -> None:
        """Test that each report is attributed to its file."""
        buckets = analysis_result_to_diagnostics(mixed_result, resolver)

        a_diagnostics = buckets[workspace_uri("a.stg")]
        assert [d.source for d in a_diagnostics] == [
            TOPLEVEL_DIAGNOSTIC_SOURCE,
            INFERENCE_DIAGNOSTIC_SOURCE,
        ]

    def test_analyzed_files_get_empty_buckets(
        self, resolver, mixed_result, workspace_uri
    ) -> None:
        """Test that clean analyzed files still get a bucket."""
        buckets = analysis_result_to_diagnostics(mixed_result, resolver)

        assert buckets[workspace_uri("b.stg")] == []

    def test_no_file_report_dropped(self, resolver, mixed_result) -> None:
        """Test that a report without a file does not affect any bucket."""
        buckets = analysis_result_to_diagnostics(mixed_result, resolver)

        assert sum(len(diagnostics) for diagnostics in buckets.values()) == 2
        assert all("lost report" not in d.message for ds in buckets.values() for d in ds)

    def test_unlocatable_top_frame_drops_report(self, resolver, inference_report) -> None:
        """Test that an inference report whose error site has no file is dropped."""
        result = FullAnalysisResult(
            analyzed_files=("a.stg",),
            inference_error_reports=(inference_report((None, 3), ("a.stg", 4)),),
        )

        buckets = analysis_result_to_diagnostics(result, resolver)

        assert all(diagnostics == [] for diagnostics in buckets.values())

    def test_reports_outside_analyzed_files(
        self, resolver, inference_report, workspace_uri
    ) -> None:
        """Test that cross-file reports create their bucket on demand."""
        result = FullAnalysisResult(
            analyzed_files=("a.stg",),
            inference_error_reports=(inference_report(("lib/dep.stg", 8), ("a.stg", 2)),),
        )

        buckets = analysis_result_to_diagnostics(result, resolver)

        assert len(buckets[workspace_uri("lib/dep.stg")]) == 1
        assert buckets[workspace_uri("a.stg")] == []

    def test_untitled_buffers(self, resolver) -> None:
        """Test that reports in unsaved buffers use untitled URIs."""
        result = FullAnalysisResult(
            analyzed_files=("Untitled-1",),
            toplevel_error_reports=(
                ToplevelErrorReport(file="Untitled-1", line=2, message="oops"),
            ),
        )

        buckets = analysis_result_to_diagnostics(result, resolver)

        assert list(buckets) == ["untitled:Untitled-1"]
        assert len(buckets["untitled:Untitled-1"]) == 1

    def test_explicit_bucket_seeds(self, resolver) -> None:
        """Test that callers can choose which documents to seed."""
        buckets = analysis_result_to_diagnostics(
            FullAnalysisResult(), resolver, file_uris=["untitled:Untitled-9"]
        )

        assert buckets == {"untitled:Untitled-9": []}
