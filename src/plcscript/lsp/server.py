"""
PLC Script Language Server Protocol (LSP) Server.

This module implements an LSP server for PLC Script using pygls. It
provides:

- Document synchronization (open, change, save, close)
- Diagnostics from the lexer, parser and analyzer
- Completion suggestions
- Hover information
- Document symbols (outline)

Usage:
    # Start the server in stdio mode (for IDE integration)
    plc-lsp

    # Start in TCP mode (for debugging)
    plc-lsp --tcp --port 2087
"""

import argparse
import logging
from typing import Optional

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from plcscript import __version__
from plcscript.lsp.analyzer import DocumentAnalyzer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("plcscript-lsp")


class PlcLanguageServer(LanguageServer):
    """
    Language Server Protocol implementation for PLC Script.

    Keeps one analyzed document per open URI and answers editor requests
    from it.
    """

    def __init__(self) -> None:
        super().__init__(
            name="plcscript-lsp",
            version=f"v{__version__}",
        )

        # uri -> analyzer
        self._analyzers: dict[str, DocumentAnalyzer] = {}

        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register all LSP request and notification handlers."""
        self.feature(types.TEXT_DOCUMENT_DID_OPEN)(self._on_did_open)
        self.feature(types.TEXT_DOCUMENT_DID_CHANGE)(self._on_did_change)
        self.feature(types.TEXT_DOCUMENT_DID_SAVE)(self._on_did_save)
        self.feature(types.TEXT_DOCUMENT_DID_CLOSE)(self._on_did_close)

        self.feature(
            types.TEXT_DOCUMENT_COMPLETION,
            types.CompletionOptions(trigger_characters=[".", "(", ",", " "]),
        )(self._on_completion)
        self.feature(types.TEXT_DOCUMENT_HOVER)(self._on_hover)
        self.feature(types.TEXT_DOCUMENT_DOCUMENT_SYMBOL)(self._on_document_symbol)

    def _get_analyzer(self, uri: str) -> Optional[DocumentAnalyzer]:
        return self._analyzers.get(uri)

    def analyze_document(self, uri: str, text: str) -> DocumentAnalyzer:
        """Analyze a document and cache the result."""
        analyzer = DocumentAnalyzer(text, uri)
        analyzer.analyze()
        self._analyzers[uri] = analyzer
        return analyzer

    def _publish_diagnostics(self, uri: str, diagnostics: list[types.Diagnostic]) -> None:
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    # =========================================================================
    # Document Synchronization
    # =========================================================================

    def _on_did_open(self, params: types.DidOpenTextDocumentParams) -> None:
        document = params.text_document
        logger.info(f"Document opened: {document.uri}")

        analyzer = self.analyze_document(document.uri, document.text)
        self._publish_diagnostics(document.uri, analyzer.diagnostics)

    def _on_did_change(self, params: types.DidChangeTextDocumentParams) -> None:
        uri = params.text_document.uri
        doc = self.workspace.get_text_document(uri)
        if doc is None:
            return

        logger.debug(f"Document changed: {uri}")

        analyzer = self.analyze_document(uri, doc.source)
        self._publish_diagnostics(uri, analyzer.diagnostics)

    def _on_did_save(self, params: types.DidSaveTextDocumentParams) -> None:
        uri = params.text_document.uri
        logger.info(f"Document saved: {uri}")

        text = params.text
        if text is None:
            doc = self.workspace.get_text_document(uri)
            text = doc.source if doc else None
        if text is not None:
            analyzer = self.analyze_document(uri, text)
            self._publish_diagnostics(uri, analyzer.diagnostics)

    def _on_did_close(self, params: types.DidCloseTextDocumentParams) -> None:
        uri = params.text_document.uri
        logger.info(f"Document closed: {uri}")

        self._analyzers.pop(uri, None)
        self._publish_diagnostics(uri, [])

    # =========================================================================
    # Language features
    # =========================================================================

    def _on_completion(self, params: types.CompletionParams) -> Optional[types.CompletionList]:
        uri = params.text_document.uri
        position = params.position

        analyzer = self._get_analyzer(uri)
        if analyzer is None:
            doc = self.workspace.get_text_document(uri)
            if doc is None:
                return None
            analyzer = self.analyze_document(uri, doc.source)

        items = analyzer.get_completions(position.line, position.character)
        return types.CompletionList(is_incomplete=False, items=items)

    def _on_hover(self, params: types.HoverParams) -> Optional[types.Hover]:
        analyzer = self._get_analyzer(params.text_document.uri)
        if analyzer is None:
            return None
        return analyzer.get_hover(params.position.line, params.position.character)

    def _on_document_symbol(
        self, params: types.DocumentSymbolParams
    ) -> Optional[list[types.DocumentSymbol]]:
        analyzer = self._get_analyzer(params.text_document.uri)
        if analyzer is None:
            return None
        return analyzer.get_document_symbols()


# =============================================================================
# Server Creation and Main Entry Point
# =============================================================================


def create_server() -> PlcLanguageServer:
    """Create and configure a PLC Script language server instance."""
    server = PlcLanguageServer()

    @server.feature(types.INITIALIZED)
    def on_initialized(
        params: types.InitializedParams,  # noqa: ARG001
    ) -> None:
        logger.info("PLC Script Language Server initialized successfully")

    @server.feature(types.SHUTDOWN)
    def on_shutdown(
        params: None,  # noqa: ARG001
    ) -> None:
        logger.info("Shutting down PLC Script Language Server")

    return server


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PLC Script Language Server",
        prog="plc-lsp",
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
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """
    Main entry point for the PLC Script language server.

    Starts the server in stdio mode unless --tcp is given.
    """
    args = create_argument_parser().parse_args(argv)

    log_level = getattr(logging, args.log_level.upper())
    logging.getLogger("plcscript-lsp").setLevel(log_level)

    server = create_server()

    if args.tcp:
        logger.info(f"Starting PLC Script LSP in TCP mode on {args.host}:{args.port}")
        server.start_tcp(args.host, args.port)
    else:
        logger.info("Starting PLC Script LSP in stdio mode")
        server.start_io()


if __name__ == "__main__":
    main()
