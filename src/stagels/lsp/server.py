"""
stagels Language Server Protocol (LSP) Server.

This module implements the diagnostics side of a language server using
pygls (Python Language Server). Three analysis stages feed it:

- Syntax: the tokenizer/parser, run on every edit
- Top-level: module loading, run as part of full analysis
- Inference: type-inference based analysis, run as part of full analysis

Syntax diagnostics are served on request (pull). Full analysis results are
pushed to the client after every completed pass.

Usage:
    # Start the server in stdio mode (for IDE integration)
    stagels-lsp

    # Start in TCP mode (for debugging)
    stagels-lsp --tcp --port 2087

    # Plug in a full analyzer
    stagels-lsp --analyzer mypackage.analysis:make_analyzer
"""

import importlib
import logging
import os
from typing import Optional

from lsprotocol import types
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path

from stagels import __version__
from stagels.analysis.parser import parse_document
from stagels.analysis.reports import FullAnalyzer, ParseResult
from stagels.lsp.aggregator import full_diagnostics
from stagels.lsp.cache import AnalysisCache, AnalysisUnit
from stagels.lsp.publication import (
    diagnostic_options,
    document_diagnostics,
    notify_diagnostics,
    notify_full_diagnostics,
)
from stagels.lsp.resolver import DocumentResolver, uri_to_filename
from stagels.utils.errors import AnalyzerLoadError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("stagels-lsp")


class StagelsLanguageServer(LanguageServer):
    """
    Language Server Protocol implementation for stagels.

    This class keeps the live parse of every open document and the analysis
    cache, and publishes diagnostics from both.
    """

    def __init__(self, analyzer: Optional[FullAnalyzer] = None) -> None:
        """
        Initialize the stagels language server.

        Args:
            analyzer: Full analyzer run on open and save; without one every
                document is out of scope for full analysis
        """
        super().__init__(
            name="stagels-lsp",
            version=f"v{__version__}",
        )

        self.analyzer = analyzer
        self.cache = AnalysisCache()
        self.resolver = DocumentResolver()

        # Live parses (uri -> parse result)
        self._parses: dict[str, ParseResult] = {}

        # Register all handlers
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register all LSP request and notification handlers."""

        @self.feature(types.INITIALIZE)
        def on_initialize(params: types.InitializeParams) -> None:
            self._on_initialize(params)

        # Document synchronization
        @self.feature(types.TEXT_DOCUMENT_DID_OPEN)
        def did_open(params: types.DidOpenTextDocumentParams) -> None:
            self._on_did_open(params)

        @self.feature(types.TEXT_DOCUMENT_DID_CHANGE)
        def did_change(params: types.DidChangeTextDocumentParams) -> None:
            self._on_did_change(params)

        @self.feature(types.TEXT_DOCUMENT_DID_SAVE)
        def did_save(params: types.DidSaveTextDocumentParams) -> None:
            self._on_did_save(params)

        @self.feature(types.TEXT_DOCUMENT_DID_CLOSE)
        def did_close(params: types.DidCloseTextDocumentParams) -> None:
            self._on_did_close(params)

        # Pull diagnostics
        @self.feature(types.TEXT_DOCUMENT_DIAGNOSTIC, diagnostic_options())
        def document_diagnostic(
            params: types.DocumentDiagnosticParams,
        ) -> types.RelatedFullDocumentDiagnosticReport:
            return self._on_document_diagnostic(params)

    def get_parse(self, uri: str) -> ParseResult | None:
        """Get the live parse of an open document."""
        return self._parses.get(uri)

    def _parse_document(self, uri: str, text: str) -> ParseResult:
        """Parse a document and keep the result as its live state."""
        parse = parse_document(text, uri_to_filename(uri))
        self._parses[uri] = parse
        return parse

    def run_full_analysis(self, uri: str, text: str) -> None:
        """
        Run full analysis from a document and push the results.

        The resulting unit replaces the previous pass started from the same
        document, then every analyzed document is republished.
        """
        filename = uri_to_filename(uri)
        if self.analyzer is None or filename is None:
            if self.cache.get(uri) is None:
                self.cache.mark_out_of_scope(uri)
            return

        logger.debug(f"Running full analysis from {uri}")
        result = self.analyzer.analyze(filename, text)
        unit = AnalysisUnit.from_result(uri, result, self.resolver)
        self.cache.record(unit)
        notify_full_diagnostics(self, self.cache)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _on_initialize(self, params: types.InitializeParams) -> None:
        """Anchor relative analyzer paths at the workspace root."""
        root_path = None
        if params.root_uri:
            root_path = to_fs_path(params.root_uri)
        elif params.root_path:
            root_path = params.root_path

        self.resolver = DocumentResolver(root_path or os.getcwd())
        logger.info(f"Initializing stagels Language Server at {self.resolver.root_path}")

    # =========================================================================
    # Document Synchronization
    # =========================================================================

    def _on_did_open(self, params: types.DidOpenTextDocumentParams) -> None:
        """Handle document open notification."""
        document = params.text_document
        logger.info(f"Document opened: {document.uri}")

        self._parse_document(document.uri, document.text)
        self.run_full_analysis(document.uri, document.text)

    def _on_did_change(self, params: types.DidChangeTextDocumentParams) -> None:
        """Handle document change notification."""
        uri = params.text_document.uri

        doc = self.workspace.get_text_document(uri)
        if doc is None:
            return

        logger.debug(f"Document changed: {uri}")
        self._parse_document(uri, doc.source)

    def _on_did_save(self, params: types.DidSaveTextDocumentParams) -> None:
        """Handle document save notification."""
        uri = params.text_document.uri
        logger.info(f"Document saved: {uri}")

        doc = self.workspace.get_text_document(uri)
        if doc:
            self._parse_document(uri, doc.source)
            self.run_full_analysis(uri, doc.source)

    def _on_did_close(self, params: types.DidCloseTextDocumentParams) -> None:
        """Handle document close notification."""
        uri = params.text_document.uri
        logger.info(f"Document closed: {uri}")

        self._parses.pop(uri, None)

        # Republish what is left of every document the closed one analyzed
        changed = self.cache.discard(uri)
        if changed:
            snapshot = self.cache.snapshot()
            notify_diagnostics(
                self,
                {other: full_diagnostics(self.cache, other, snapshot) for other in changed},
            )

    # =========================================================================
    # Pull Diagnostics
    # =========================================================================

    def _on_document_diagnostic(
        self, params: types.DocumentDiagnosticParams
    ) -> types.RelatedFullDocumentDiagnosticReport:
        """Handle document diagnostic request."""
        uri = params.text_document.uri
        return document_diagnostics(self.get_parse(uri), uri)


# =============================================================================
# Server Creation and Main Entry Point
# =============================================================================


def load_analyzer(import_path: str) -> FullAnalyzer:
    """
    Load a full analyzer from a ``module:attribute`` import path.

    The attribute may be an analyzer or a zero-argument factory.
    """
    module_name, _, attribute = import_path.partition(":")
    if not module_name or not attribute:
        raise AnalyzerLoadError(import_path, "expected 'module:attribute'")
    target = getattr(importlib.import_module(module_name), attribute)
    if hasattr(target, "analyze"):
        return target
    return target()


def create_server(analyzer: Optional[FullAnalyzer] = None) -> StagelsLanguageServer:
    """Create and configure a stagels language server instance."""
    return StagelsLanguageServer(analyzer)


def main() -> None:
    """
    Main entry point for the stagels language server.

    Starts the server in stdio mode for IDE integration.
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="stagels Language Server",
        prog="stagels-lsp",
    )
    parser.add_argument(
        "--tcp",
        action="store_true",
        help="Start server in TCP mode instead of stdio",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to in TCP mode (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=2087,
        help="Port to listen on in TCP mode (default: 2087)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging level (default: info)",
    )
    parser.add_argument(
        "--analyzer",
        default=None,
        help="Full analyzer as 'module:attribute' (default: syntax only)",
    )

    args = parser.parse_args()

    # Configure logging level
    log_level = getattr(logging, args.log_level.upper())
    logging.getLogger("stagels-lsp").setLevel(log_level)
    logging.getLogger("stagels").setLevel(log_level)

    analyzer = load_analyzer(args.analyzer) if args.analyzer else None
    server = create_server(analyzer)

    if args.tcp:
        logger.info(f"Starting stagels LSP in TCP mode on {args.host}:{args.port}")
        server.start_tcp(args.host, args.port)
    else:
        logger.info("Starting stagels LSP in stdio mode")
        server.start_io()


if __name__ == "__main__":
    main()
