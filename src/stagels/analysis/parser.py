"""
Reference tokenizer for the language server.

The real parser is an external collaborator; this tokenizer stands in for it
so the server can run end to end. It checks the structural layer only:

- matching of (), [] and {} delimiters
- string literals terminated on the line they start on
- ``#`` comments, which are skipped

Offsets are byte offsets into the UTF-8 buffer, as the diagnostics layer
expects from any parser.
"""

from typing import Optional

from stagels.analysis.reports import DiagnosticLevel, ParseResult, SyntaxDiagnostic
from stagels.analysis.source import SourceFile

OPENERS = {ord("("): ord(")"), ord("["): ord("]"), ord("{"): ord("}")}
CLOSERS = {close: open_ for open_, close in OPENERS.items()}

_NEWLINE = ord("\n")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_HASH = ord("#")


class DelimiterParser:
    """
    Tokenizes a buffer and reports structural syntax problems.

    Usage:
        parser = DelimiterParser(text, filename="main.stg")
        result = parser.parse()
        for diagnostic in result.diagnostics: ...
    """

    def __init__(self, text: str, filename: Optional[str] = None) -> None:
        self.source = SourceFile(text, filename)
        self.pos = 0
        self._stack: list[int] = []
        self._diagnostics: list[SyntaxDiagnostic] = []

    def parse(self) -> ParseResult:
        code = self.source.code
        while self.pos < len(code):
            byte = code[self.pos]
            if byte == _HASH:
                self._skip_comment()
            elif byte == _QUOTE:
                self._scan_string()
            elif byte in OPENERS:
                self._stack.append(self.pos)
                self.pos += 1
            elif byte in CLOSERS:
                self._close(byte)
                self.pos += 1
            else:
                self.pos += 1

        for start in reversed(self._stack):
            delimiter = chr(code[start])
            self._error(start, start, f"unclosed delimiter '{delimiter}'")
        self._stack.clear()

        self._diagnostics.sort(key=lambda diagnostic: diagnostic.first_byte)
        return ParseResult(source=self.source, diagnostics=tuple(self._diagnostics))

    def _skip_comment(self) -> None:
        code = self.source.code
        while self.pos < len(code) and code[self.pos] != _NEWLINE:
            self.pos += 1

    def _scan_string(self) -> None:
        code = self.source.code
        start = self.pos
        self.pos += 1
        while self.pos < len(code):
            byte = code[self.pos]
            if byte == _BACKSLASH:
                self.pos += 2
                continue
            if byte == _QUOTE:
                self.pos += 1
                return
            if byte == _NEWLINE:
                break
            self.pos += 1
        self.pos = min(self.pos, len(code))
        self._error(start, max(start, self.pos - 1), "unterminated string literal")

    def _close(self, byte: int) -> None:
        expected = CLOSERS[byte]
        if self._stack and self.source.code[self._stack[-1]] == expected:
            self._stack.pop()
            return
        if self._stack:
            opener = self._stack.pop()
            self._error(
                self.pos,
                self.pos,
                f"mismatched delimiter '{chr(byte)}', "
                f"expected '{chr(OPENERS[self.source.code[opener]])}'",
            )
        else:
            self._error(self.pos, self.pos, f"unexpected closing delimiter '{chr(byte)}'")

    def _error(self, first_byte: int, last_byte: int, message: str) -> None:
        self._diagnostics.append(
            SyntaxDiagnostic(
                first_byte=first_byte,
                last_byte=last_byte,
                level=DiagnosticLevel.ERROR,
                message=message,
            )
        )


def parse_document(text: str, filename: Optional[str] = None) -> ParseResult:
    """
    Convenience function to parse a document.

    Args:
        text: The document text
        filename: Optional filename for reported locations

    Returns:
        The live parse state for the document
    """
    return DelimiterParser(text, filename).parse()
