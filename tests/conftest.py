"""
Pytest configuration and shared fixtures for stagels tests.
"""

from dataclasses import dataclass, field

import pytest
from pygls.uris import from_fs_path

from stagels.analysis.parser import parse_document
from stagels.analysis.reports import (
    Frame,
    FullAnalysisResult,
    InferenceErrorReport,
    ParseResult,
    PostProcessor,
    ToplevelErrorReport,
)
from stagels.lsp.cache import AnalysisCache
from stagels.lsp.resolver import DocumentResolver

WORKSPACE_ROOT = "/workspace"


@pytest.fixture
def workspace_uri():
    """Fixture to build the URI of a file under the test workspace root."""

    def _uri(filename: str) -> str:
        return from_fs_path(f"{WORKSPACE_ROOT}/{filename}")

    return _uri


@pytest.fixture
def resolver() -> DocumentResolver:
    """Resolver anchored at the test workspace root."""
    return DocumentResolver(WORKSPACE_ROOT)


@pytest.fixture
def cache() -> AnalysisCache:
    """Empty analysis cache."""
    return AnalysisCache()


@pytest.fixture
def parse():
    """Fixture to parse source text into a live parse."""

    def _parse(text: str, filename: str = f"{WORKSPACE_ROOT}/main.stg") -> ParseResult:
        return parse_document(text, filename)

    return _parse


@pytest.fixture
def inference_report():
    """Factory fixture for inference reports from (file, line) frames."""

    def _create(
        *frames: tuple[str | None, int],
        message: str = "no matching method found",
        definite: bool = True,
    ) -> InferenceErrorReport:
        return InferenceErrorReport(
            frames=tuple(
                Frame(file=file, line=line, signature=f"caller_{index}(x::Int)")
                for index, (file, line) in enumerate(frames)
            ),
            message=message,
            definite=definite,
        )

    return _create


# =============================================================================
# Fake Full Analyzer
# =============================================================================


@dataclass
class FakeAnalyzer:
    """
    Full analyzer returning canned results.

    Results are looked up by the entry filename; unknown entries analyze
    cleanly. Every call is recorded.
    """

    results: dict[str, FullAnalysisResult] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def analyze(self, filename: str, text: str) -> FullAnalysisResult:  # noqa: ARG002
        self.calls.append(filename)
        return self.results.get(
            filename, FullAnalysisResult(analyzed_files=(filename,))
        )


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def mixed_result(inference_report) -> FullAnalysisResult:
    """
    A full pass over a.stg and b.stg with one report of every kind.

    - a top-level error on line 3 of a.stg
    - an inference error in a.stg called from b.stg
    - a top-level error with no file, which must be dropped
    """
    return FullAnalysisResult(
        analyzed_files=("a.stg", "b.stg"),
        toplevel_error_reports=(
            ToplevelErrorReport(file="a.stg", line=3, message="UndefVarError: `x` not defined"),
            ToplevelErrorReport(file=None, line=1, message="lost report"),
        ),
        inference_error_reports=(
            inference_report(("a.stg", 5), ("b.stg", 12)),
        ),
        postprocessor=PostProcessor(),
    )
