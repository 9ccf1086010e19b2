"""
Diagnostic aggregation for stagels LSP.

Several analysis units can report problems about the same document. The
aggregator merges them into the single list a client is shown.
"""

from collections.abc import Mapping
from typing import Optional

from lsprotocol import types

from stagels.analysis.reports import ParseResult
from stagels.lsp.cache import AnalysisCache, AnalysisInfo, OutOfScope
from stagels.lsp.diagnostics import parse_result_to_diagnostics


def full_diagnostics(
    cache: AnalysisCache,
    uri: str,
    snapshot: Optional[Mapping[str, AnalysisInfo]] = None,
) -> list[types.Diagnostic]:
    """
    Collect every unit's diagnostics for a document.

    Units are visited in cache order and their diagnostics appended without
    interleaving. A document that is out of scope or has never been analyzed
    yields an empty list.

    Args:
        cache: The analysis cache
        uri: The document URI
        snapshot: Cache snapshot to read; taken from ``cache`` when omitted

    Returns:
        List of LSP diagnostics for the document
    """
    if snapshot is None:
        snapshot = cache.snapshot()
    info = snapshot.get(uri)
    if info is None or isinstance(info, OutOfScope):
        return []

    diagnostics: list[types.Diagnostic] = []
    for unit in info:
        diagnostics.extend(unit.diagnostics_for(uri))
    return diagnostics


def syntax_only_diagnostics(parse: ParseResult) -> list[types.Diagnostic]:
    """Get the diagnostics of a live parse without consulting the cache."""
    if not parse.diagnostics:
        return []
    return parse_result_to_diagnostics(parse)
