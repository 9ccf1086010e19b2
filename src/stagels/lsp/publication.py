"""
Diagnostic publication for stagels LSP.

Diagnostics reach the client through two protocols:

- push (``textDocument/publishDiagnostics``): after a full analysis pass the
  server sweeps the analysis cache and sends one notification per document,
  including empty lists so fixed problems disappear
- pull (``textDocument/diagnostic``): the client asks for one document and
  gets the syntax diagnostics of its live parse

The pull path answers with syntax diagnostics only. Top-level and inference
results are delivered by push.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Optional

from lsprotocol import types

from stagels.analysis.reports import ParseResult
from stagels.lsp.aggregator import full_diagnostics, syntax_only_diagnostics
from stagels.lsp.cache import AnalysisCache, OutOfScope
from stagels.utils.errors import StaleDocumentError

if TYPE_CHECKING:
    from pygls.lsp.server import LanguageServer

logger = logging.getLogger(__name__)

DIAGNOSTIC_IDENTIFIER = "stagels/textDocument/diagnostic"
DIAGNOSTIC_REGISTRATION_ID = "stagels-diagnostic"
DIAGNOSTIC_REGISTRATION_METHOD = types.TEXT_DOCUMENT_DIAGNOSTIC

DEFAULT_DOCUMENT_SELECTOR = (
    types.TextDocumentFilterScheme(scheme="file"),
    types.TextDocumentFilterScheme(scheme="untitled"),
)


# =============================================================================
# textDocument/publishDiagnostics
# =============================================================================


def collect_full_diagnostics(cache: AnalysisCache) -> dict[str, list[types.Diagnostic]]:
    """
    Compute the full diagnostics of every analyzed document.

    All documents are read from one cache snapshot. Out-of-scope documents
    are skipped; analyzed documents without problems map to an empty list.
    """
    snapshot = cache.snapshot()
    return {
        uri: full_diagnostics(cache, uri, snapshot)
        for uri, info in snapshot.items()
        if not isinstance(info, OutOfScope)
    }


def notify_diagnostics(
    server: LanguageServer,
    uri2diagnostics: Mapping[str, Sequence[types.Diagnostic]],
) -> None:
    """Send one publish notification per document."""
    for uri, diagnostics in uri2diagnostics.items():
        logger.debug("Publishing %d diagnostics for %s", len(diagnostics), uri)
        server.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=list(diagnostics))
        )


def notify_full_diagnostics(server: LanguageServer, cache: AnalysisCache) -> None:
    """Push the full diagnostics of every analyzed document."""
    notify_diagnostics(server, collect_full_diagnostics(cache))


# =============================================================================
# textDocument/diagnostic
# =============================================================================


def diagnostic_options() -> types.DiagnosticOptions:
    """Options advertised for the pull protocol."""
    return types.DiagnosticOptions(
        identifier=DIAGNOSTIC_IDENTIFIER,
        inter_file_dependencies=False,
        workspace_diagnostics=False,
    )


def diagnostic_registration() -> types.Registration:
    """
    Build a dynamic registration for the pull protocol.

    Development tooling uses this to unregister and re-register the
    capability on a running server after changing the handler.
    """
    options = diagnostic_options()
    return types.Registration(
        id=DIAGNOSTIC_REGISTRATION_ID,
        method=DIAGNOSTIC_REGISTRATION_METHOD,
        register_options=types.DiagnosticRegistrationOptions(
            document_selector=list(DEFAULT_DOCUMENT_SELECTOR),
            identifier=options.identifier,
            inter_file_dependencies=options.inter_file_dependencies,
            workspace_diagnostics=options.workspace_diagnostics,
        ),
    )


def document_diagnostics(
    parse: Optional[ParseResult], uri: str
) -> types.RelatedFullDocumentDiagnosticReport:
    """
    Answer a pull request for one document.

    Args:
        parse: The document's live parse, or None if it is not open
        uri: The document URI

    Returns:
        Full report holding the document's syntax diagnostics

    Raises:
        StaleDocumentError: If the document has no live parse
    """
    if parse is None:
        raise StaleDocumentError(uri)
    return types.RelatedFullDocumentDiagnosticReport(items=syntax_only_diagnostics(parse))
