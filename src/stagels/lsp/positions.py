"""
Position mapping for stagels LSP.

Analyzers locate problems in three different ways: byte offsets into a
buffer, 1-based line numbers, and 1-based line numbers where 0 stands for
"unknown". These helpers turn each of them into LSP coordinates.
"""

from lsprotocol import types

from stagels.analysis.source import SourceFile

# Largest signed 32-bit column, used as the end of whole-line ranges
MAX_COLUMN = 2**31 - 1


def to_position(source: SourceFile, offset: int) -> types.Position:
    """
    Convert a byte offset into an LSP position.

    Lines become 0-based. The column is kept in the analyzer's own unit,
    which already matches what clients expect.

    Args:
        source: The buffer the offset points into
        offset: 0-indexed byte offset

    Returns:
        The LSP position of the offset
    """
    location = source.source_location(offset)
    return types.Position(line=location.line - 1, character=location.column)


def normalize_line(line: int) -> int:
    """Convert a compiler line number to a 0-based line, keeping the 0 sentinel."""
    return line if line == 0 else line - 1


def whole_line_range(line: int) -> types.Range:
    """Build a range covering all of a 0-based line."""
    return types.Range(
        start=types.Position(line=line, character=0),
        end=types.Position(line=line, character=MAX_COLUMN),
    )
