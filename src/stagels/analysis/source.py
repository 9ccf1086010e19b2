"""
Source buffers with a pre-indexed line table.

Analyzers report syntax problems as byte offsets into the UTF-8 encoding of
a document. ``SourceFile`` indexes the line starts once so that each offset
lookup is a binary search instead of a scan from the top of the buffer.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Optional

from stagels.utils.errors import SourceLocation


class SourceFile:
    """
    A source buffer plus its line-start table.

    Attributes:
        text: The decoded document text
        filename: Optional filename, carried into reported locations
    """

    def __init__(self, text: str, filename: Optional[str] = None) -> None:
        self.text = text
        self.filename = filename
        self.code = text.encode("utf-8")
        self._line_starts = [0]
        for index, byte in enumerate(self.code):
            if byte == 0x0A:  # \n
                self._line_starts.append(index + 1)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def source_location(self, offset: int) -> SourceLocation:
        """
        Find the 1-based line and column containing a byte offset.

        The column counts characters from the start of the line, so
        multi-byte characters advance it by one. Offsets outside the buffer
        are clamped to its bounds.
        """
        offset = min(max(offset, 0), len(self.code))
        line_index = bisect_right(self._line_starts, offset) - 1
        line_start = self._line_starts[line_index]
        prefix = self.code[line_start:offset].decode("utf-8", errors="replace")
        return SourceLocation(
            line=line_index + 1,
            column=len(prefix) + 1,
            offset=offset,
            filename=self.filename,
        )
