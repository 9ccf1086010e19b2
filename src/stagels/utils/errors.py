"""
Error types and source location tracking for stagels.
"""

from dataclasses import dataclass
from typing import Optional

from lsprotocol import converters, types
from pygls.exceptions import JsonRpcException


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """
    Represents a location in a source buffer.

    Attributes:
        line: 1-indexed line number
        column: 1-indexed column number, counted in characters
        offset: 0-indexed byte offset from start of source
        filename: Optional filename for error reporting
    """

    line: int
    column: int
    offset: int = 0
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


class StagelsError(Exception):
    """Base exception for all stagels errors."""

    pass


class StaleDocumentError(JsonRpcException):
    """
    Raised when a diagnostic pull targets a document with no live parse.

    The document was closed (or never opened) by the time the request got
    serviced. Clients receive a ``ContentModified`` error whose data asks
    them to re-issue the request later.
    """

    CODE = int(types.LSPErrorCodes.ContentModified)
    MESSAGE = "Content Modified"

    def __init__(self, uri: str) -> None:
        self.uri = uri
        data = converters.get_converter().unstructure(
            types.DiagnosticServerCancellationData(retrigger_request=True)
        )
        super().__init__(
            message=f"File cache for {uri} is not available",
            code=self.CODE,
            data=data,
        )


class AnalyzerLoadError(StagelsError):
    """Raised when a full analyzer cannot be loaded from its import path."""

    def __init__(self, import_path: str, reason: str) -> None:
        self.import_path = import_path
        super().__init__(f"Cannot load analyzer {import_path!r}: {reason}")
