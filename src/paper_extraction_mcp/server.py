"""MCP server exposing tiered PDF metadata extraction."""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List

import fitz  # PyMuPDF
import pdfplumber
import PyPDF2
import pytesseract
from mcp.server.models import InitializationOptions
from mcp.server import Server
from mcp.types import Tool, TextContent, ServerCapabilities, ToolsCapability

from . import __version__
from .api.grobid_client import GrobidClient
from .config import ExtractionOptions
from .extraction.orchestrator import TieredExtractor
from .extraction.scan_classifier import ScanAssessment, ScanClassifier
from .models import ExtractionResult

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 1500


class ExtractionMCPServer:
    """MCP Server for extracting metadata from academic PDFs."""

    def __init__(self, options: ExtractionOptions = None, extractor: TieredExtractor = None):
        self.server = Server("paper-extraction-mcp")
        self.options = options or ExtractionOptions.from_env()
        self.extractor = extractor or TieredExtractor(options=self.options)
        self._setup_handlers()

    def _setup_handlers(self):
        """Set up MCP request handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> List[Tool]:
            """List available tools."""
            return self.list_tools()

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Dict[str, Any]
        ) -> List[TextContent]:
            """Handle tool calls."""
            return await self.call_tool(name, arguments)

    def list_tools(self) -> List[Tool]:
        return [
            Tool(
                name="extract_pdf_metadata",
                description=(
                    "Extract title, authors, abstract, venue, DOI and year from an academic PDF. "
                    "Tries a Crossref DOI lookup, GROBID, the embedded text layer and OCR in turn."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "pdf_path": {
                            "type": "string",
                            "description": "Path to a local PDF file",
                        },
                        "enable_ocr": {
                            "type": "boolean",
                            "description": "Allow OCR for scanned documents (default: from ENABLE_OCR, else false)",
                        },
                        "max_timeout_ms": {
                            "type": "integer",
                            "description": "Overall time budget in milliseconds (default: 30000)",
                            "minimum": 1000,
                            "maximum": 600000,
                        },
                        "include_full_text": {
                            "type": "boolean",
                            "description": "Include a preview of the extracted full text",
                            "default": False,
                        },
                    },
                    "required": ["pdf_path"],
                },
            ),
            Tool(
                name="check_extraction_backends",
                description="Report which extraction backends (GROBID, Tesseract, PDF libraries) are available",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "grobid_url": {
                            "type": "string",
                            "description": "GROBID base URL to probe (default: GROBID_URL or http://localhost:8070)",
                        },
                    },
                },
            ),
            Tool(
                name="classify_pdf",
                description="Decide whether a PDF is scanned (no usable embedded text layer)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "pdf_path": {
                            "type": "string",
                            "description": "Path to a local PDF file",
                        },
                    },
                    "required": ["pdf_path"],
                },
            ),
        ]

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        try:
            if name == "extract_pdf_metadata":
                pdf_bytes = await self._read_pdf(arguments["pdf_path"])
                options = replace(
                    self.options,
                    enable_ocr=arguments.get("enable_ocr", self.options.enable_ocr),
                    max_timeout_ms=arguments.get("max_timeout_ms", self.options.max_timeout_ms),
                )
                result = await self.extractor.extract(pdf_bytes, options)
                text = self._format_extraction(
                    result, arguments["pdf_path"], arguments.get("include_full_text", False)
                )
                return [TextContent(type="text", text=text)]

            elif name == "check_extraction_backends":
                status = await self.check_backends(arguments.get("grobid_url") or self.options.grobid_url)
                return [TextContent(type="text", text=self._format_backends(status))]

            elif name == "classify_pdf":
                pdf_bytes = await self._read_pdf(arguments["pdf_path"])
                classifier = ScanClassifier(
                    min_pages=self.options.scan_min_pages,
                    min_chars_per_page=self.options.scan_min_chars_per_page,
                )
                assessment = await asyncio.to_thread(classifier.assess, pdf_bytes)
                return [TextContent(type="text", text=self._format_classification(assessment, arguments["pdf_path"]))]

            else:
                raise ValueError(f"Unknown tool: {name}")

        except Exception as e:
            logger.error(f"Error in tool {name}: {e}")
            return [TextContent(type="text", text=f"Error: {str(e)}")]

    async def _read_pdf(self, pdf_path: str) -> bytes:
        path = Path(pdf_path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"PDF not found: {pdf_path}")
        return await asyncio.to_thread(path.read_bytes)

    async def check_backends(self, grobid_url: str) -> Dict[str, Any]:
        """Probe every backend the tiers depend on."""
        async with GrobidClient(base_url=grobid_url) as client:
            grobid_alive = await client.is_alive(timeout_s=self.options.health_timeout_ms / 1000)

        try:
            tesseract = str(await asyncio.to_thread(pytesseract.get_tesseract_version))
        except Exception as e:
            logger.debug(f"Tesseract unavailable: {e}")
            tesseract = None

        return {
            "grobid_url": grobid_url,
            "grobid_alive": grobid_alive,
            "tesseract_version": tesseract,
            "pdfplumber_version": getattr(pdfplumber, "__version__", "unknown"),
            "pypdf2_version": getattr(PyPDF2, "__version__", "unknown"),
            "pymupdf_version": getattr(fitz, "VersionBind", "unknown"),
            "ocr_enabled": self.options.enable_ocr,
        }

    def _format_extraction(self, result: ExtractionResult, pdf_path: str, include_full_text: bool) -> str:
        """Format an extraction result for display."""
        output = f"# PDF Metadata Extraction\n\n"
        output += f"**File:** {Path(pdf_path).name}\n"
        output += f"**Method:** {result.method.value}\n"
        output += f"**Confidence:** {result.confidence.value}\n"
        output += f"**Elapsed:** {result.elapsed_ms} ms\n"
        if result.page_count is not None:
            output += f"**Pages:** {result.page_count}\n"
        if result.is_scanned is not None:
            output += f"**Scanned:** {'yes' if result.is_scanned else 'no'}\n"
        output += "\n"

        output += "## Metadata\n"
        output += f"**Title:** {result.title}\n"
        output += f"**Authors:** {', '.join(result.authors) if result.authors else 'not found'}\n"
        if result.venue:
            output += f"**Venue:** {result.venue}\n"
        if result.year:
            output += f"**Year:** {result.year}\n"
        if result.doi:
            output += f"**DOI:** {result.doi}\n"
        output += f"**Word Count:** {result.word_count or 0}\n\n"

        if result.abstract:
            output += f"## Abstract\n{result.abstract}\n\n"

        if result.diagnostics:
            output += "## Extraction Notes\n"
            for note in result.diagnostics:
                output += f"- {note}\n"
            output += "\n"

        if include_full_text and result.full_text:
            output += "## Full Text Preview\n"
            preview = result.full_text[:PREVIEW_CHARS]
            if len(result.full_text) > PREVIEW_CHARS:
                preview += "..."
            output += f"{preview}\n"

        return output

    def _format_backends(self, status: Dict[str, Any]) -> str:
        output = "# Extraction Backends\n\n"
        grobid = "✅ reachable" if status["grobid_alive"] else "❌ unreachable"
        output += f"**GROBID** ({status['grobid_url']}): {grobid}\n"
        if status["tesseract_version"]:
            output += f"**Tesseract:** ✅ {status['tesseract_version']}\n"
        else:
            output += "**Tesseract:** ❌ not installed\n"
        output += f"**OCR tier:** {'enabled' if status['ocr_enabled'] else 'disabled'}\n"
        output += f"**pdfplumber:** {status['pdfplumber_version']}\n"
        output += f"**PyPDF2:** {status['pypdf2_version']}\n"
        output += f"**PyMuPDF:** {status['pymupdf_version']}\n"
        return output

    def _format_classification(self, assessment: ScanAssessment, pdf_path: str) -> str:
        output = f"# Scan Classification: {Path(pdf_path).name}\n\n"
        output += f"**Scanned:** {'yes' if assessment.is_scanned else 'no'}\n"
        output += f"**Pages:** {assessment.page_count}\n"
        output += f"**First-page text density:** {assessment.chars_per_page:.0f} chars/page\n"
        output += f"**Reason:** {assessment.reason}\n"
        return output

    async def run(self, transport_type: str = "stdio"):
        """Run the MCP server."""
        if transport_type == "stdio":
            from mcp.server.stdio import stdio_server

            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    InitializationOptions(
                        server_name="paper-extraction-mcp",
                        server_version=__version__,
                        capabilities=ServerCapabilities(
                            tools=ToolsCapability(),
                        ),
                    ),
                )
        else:
            raise ValueError(f"Unsupported transport type: {transport_type}")


def create_server() -> ExtractionMCPServer:
    """Create and return an ExtractionMCPServer instance."""
    return ExtractionMCPServer()


def main():
    """Main entry point for the MCP server."""
    logger.info("Starting paper extraction MCP server...")

    server = create_server()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
