"""
Analysis cache for stagels LSP.

Holds the completed full-analysis passes, keyed by the documents they cover.
The analysis pipeline writes to the cache; the diagnostics layer only reads
from it, through snapshots.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Union

from lsprotocol import types

from stagels.analysis.reports import FullAnalysisResult
from stagels.lsp.diagnostics import analysis_result_to_diagnostics
from stagels.lsp.resolver import DocumentResolver

logger = logging.getLogger(__name__)


class OutOfScope:
    """Marker for documents that are not subject to full analysis."""

    _instance: OutOfScope | None = None

    def __new__(cls) -> OutOfScope:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "OUT_OF_SCOPE"


OUT_OF_SCOPE = OutOfScope()


@dataclass(frozen=True)
class AnalysisUnit:
    """
    One completed full-analysis pass.

    Attributes:
        entry_uri: The document the pass was started from
        uri2diagnostics: Diagnostics the pass attributed to each document
    """

    entry_uri: str
    uri2diagnostics: Mapping[str, tuple[types.Diagnostic, ...]] = field(
        default_factory=dict
    )

    @classmethod
    def from_result(
        cls,
        entry_uri: str,
        result: FullAnalysisResult,
        resolver: DocumentResolver,
    ) -> AnalysisUnit:
        """Build a unit from a full analysis result."""
        buckets = analysis_result_to_diagnostics(result, resolver)
        buckets.setdefault(entry_uri, [])
        return cls(
            entry_uri=entry_uri,
            uri2diagnostics=MappingProxyType(
                {uri: tuple(diagnostics) for uri, diagnostics in buckets.items()}
            ),
        )

    @property
    def uris(self) -> tuple[str, ...]:
        return tuple(self.uri2diagnostics)

    def diagnostics_for(self, uri: str) -> tuple[types.Diagnostic, ...]:
        return self.uri2diagnostics.get(uri, ())


AnalysisInfo = Union[OutOfScope, tuple[AnalysisUnit, ...]]


class AnalysisCache:
    """
    Process-wide mapping from document URI to its analysis units.

    Writers replace whole entries and publish a new mapping; readers take a
    snapshot, which is never mutated afterwards. This keeps every aggregation
    consistent without locking around the readers.
    """

    def __init__(self) -> None:
        self._entries: Mapping[str, AnalysisInfo] = MappingProxyType({})
        self._write_lock = threading.Lock()

    def snapshot(self) -> Mapping[str, AnalysisInfo]:
        """Get a read-only view of the current entries."""
        return self._entries

    def get(self, uri: str) -> AnalysisInfo | None:
        return self._entries.get(uri)

    def __contains__(self, uri: object) -> bool:
        return uri in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _publish(self, entries: dict[str, AnalysisInfo]) -> None:
        self._entries = MappingProxyType(entries)

    def replace(self, uri: str, info: AnalysisInfo | Iterable[AnalysisUnit]) -> None:
        """Replace the entry of one document."""
        if not isinstance(info, OutOfScope):
            info = tuple(info)
        with self._write_lock:
            entries = dict(self._entries)
            entries[uri] = info
            self._publish(entries)

    def mark_out_of_scope(self, uri: str) -> None:
        self.replace(uri, OUT_OF_SCOPE)

    def record(self, unit: AnalysisUnit) -> None:
        """
        Record a completed pass for every document it covers.

        A unit replaces any earlier unit started from the same entry
        document, including in documents the new pass no longer covers.
        Units started from other documents are kept.
        """
        with self._write_lock:
            entries = dict(self._entries)
            for uri, current in self._entries.items():
                if uri not in unit.uri2diagnostics and isinstance(current, tuple):
                    entries[uri] = tuple(
                        u for u in current if u.entry_uri != unit.entry_uri
                    )
            for uri in unit.uris:
                current = entries.get(uri)
                if isinstance(current, tuple):
                    kept = tuple(u for u in current if u.entry_uri != unit.entry_uri)
                else:
                    kept = ()
                entries[uri] = (*kept, unit)
            self._publish(entries)
        logger.debug(
            "Recorded analysis of %s covering %d documents", unit.entry_uri, len(unit.uris)
        )

    def discard(self, uri: str) -> tuple[str, ...]:
        """
        Drop a closed document and every unit started from it.

        Entries left without units are removed. Entries still covered by a
        pass from another document keep that pass.

        Returns:
            URIs whose diagnostics changed, in cache order
        """
        with self._write_lock:
            if uri not in self._entries:
                return ()
            entries = dict(self._entries)
            changed = []
            for covered, current in self._entries.items():
                if not isinstance(current, tuple):
                    continue
                kept = tuple(unit for unit in current if unit.entry_uri != uri)
                if len(kept) == len(current):
                    continue
                changed.append(covered)
                if kept:
                    entries[covered] = kept
                else:
                    del entries[covered]
            if entries.get(uri) in ((), OUT_OF_SCOPE):
                del entries[uri]
            self._publish(entries)
        logger.debug("Discarded %s, %d documents changed", uri, len(changed))
        return tuple(changed)
