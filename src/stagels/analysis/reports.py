"""
Raw analyzer output consumed by the diagnostics layer.

Three analysis stages feed the language server, each reporting problems in
its own shape:

- the tokenizer/parser emits ``SyntaxDiagnostic`` records carrying byte
  offsets into a known ``SourceFile``
- the top-level (module loading) evaluator emits ``ToplevelErrorReport``
  records carrying a filename and a 1-based line number, or a nested
  syntax diagnostic when loading hit a parse failure
- the inference-based analyzer emits ``InferenceErrorReport`` records
  carrying a call stack of ``Frame`` objects

The set of variants is closed: ``RawReport`` is their union and every
variant is tagged with a ``ReportKind``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Protocol, Union

from lsprotocol import types

from stagels.analysis.source import SourceFile


class ReportKind(Enum):
    """Which analysis stage produced a raw report."""

    SYNTAX = "syntax"
    TOPLEVEL = "toplevel"
    INFERENCE = "inference"


class DiagnosticLevel(Enum):
    """Severity level as reported by the parser."""

    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"
    HELP = "help"


@dataclass(frozen=True, slots=True)
class SyntaxDiagnostic:
    """
    A problem found while tokenizing or parsing a buffer.

    Attributes:
        first_byte: 0-indexed offset of the first byte of the problem
        last_byte: 0-indexed offset of the last byte of the problem (inclusive)
        level: Parser severity level
        message: Human-readable description
    """

    kind: ClassVar[ReportKind] = ReportKind.SYNTAX

    first_byte: int
    last_byte: int
    level: DiagnosticLevel
    message: str


@dataclass(frozen=True, slots=True)
class ParseResult:
    """The live parse state of one open document."""

    source: SourceFile
    diagnostics: tuple[SyntaxDiagnostic, ...] = ()


@dataclass(frozen=True, slots=True)
class ToplevelErrorReport:
    """
    A failure raised while loading a unit of code.

    ``file`` is ``None`` when the loader could not attribute the failure to
    any file. When ``syntax`` is set the report wraps a parse failure that
    loading ran into, and ``source`` is the buffer its offsets point into.
    """

    kind: ClassVar[ReportKind] = ReportKind.TOPLEVEL

    file: Optional[str]
    line: int
    message: str = ""
    syntax: Optional[SyntaxDiagnostic] = None
    source: Optional[SourceFile] = None

    def render(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One entry of an inference report's call stack.

    ``file`` is ``None`` when the frame has no known location, and a
    ``line`` of 0 means the line is unknown.
    """

    file: Optional[str]
    line: int
    signature: str = ""


@dataclass(frozen=True)
class InferenceErrorReport:
    """
    A problem found by type inference.

    ``frames`` runs from the error site (index 0) out to the outermost
    caller. ``definite`` separates errors that will happen from errors that
    may happen, and drives ``severity()``.
    """

    kind: ClassVar[ReportKind] = ReportKind.INFERENCE

    frames: tuple[Frame, ...]
    message: str
    definite: bool = True

    def severity(self) -> types.DiagnosticSeverity:
        if self.definite:
            return types.DiagnosticSeverity.Error
        return types.DiagnosticSeverity.Warning

    def render(self) -> str:
        return self.message

    def render_frame_signature(self, frame: Frame) -> str:
        return frame.signature


RawReport = Union[SyntaxDiagnostic, ToplevelErrorReport, InferenceErrorReport]


class PostProcessor:
    """
    Rewrites internal shadow module names back to the user's module names.

    The loader evaluates user code inside virtual modules, so rendered
    reports mention names like ``##VirtualModule#1.Geometry``. Calling the
    post-processor on such text replaces each virtual name with the real
    module it stands for.

    Args:
        actual2virtual: Mapping from real module name to virtual module name
    """

    def __init__(self, actual2virtual: Optional[Mapping[str, str]] = None) -> None:
        self.virtual2actual = {
            virtual: actual for actual, virtual in (actual2virtual or {}).items()
        }
        if self.virtual2actual:
            # Longest names first so nested virtual names win
            names = sorted(self.virtual2actual, key=len, reverse=True)
            self._pattern: Optional[re.Pattern[str]] = re.compile(
                "|".join(re.escape(name) for name in names)
            )
        else:
            self._pattern = None

    def __call__(self, text: str) -> str:
        if self._pattern is None:
            return text
        return self._pattern.sub(lambda match: self.virtual2actual[match.group(0)], text)


@dataclass(frozen=True)
class FullAnalysisResult:
    """
    Output of one completed top-level + inference pass.

    Attributes:
        analyzed_files: Filenames the pass covered
        toplevel_error_reports: Loading failures
        inference_error_reports: Inference failures
        postprocessor: Name rewriter shared by both report kinds
    """

    analyzed_files: Sequence[str] = ()
    toplevel_error_reports: Sequence[ToplevelErrorReport] = ()
    inference_error_reports: Sequence[InferenceErrorReport] = ()
    postprocessor: PostProcessor = field(default_factory=PostProcessor)


class FullAnalyzer(Protocol):
    """Runs the top-level and inference stages over an entry file."""

    def analyze(self, filename: str, text: str) -> FullAnalysisResult: ...
