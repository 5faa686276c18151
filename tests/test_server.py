"""Tests for the MCP server."""

from unittest.mock import patch

import pytest

from paper_extraction_mcp.models import ExtractionMethod, ExtractionResult, PartialRecord
from paper_extraction_mcp.server import ExtractionMCPServer

from conftest import TITLE


class TestExtractionMCPServer:
    """Test the MCP server functionality."""

    @pytest.fixture
    def server(self, offline_options):
        """Create an ExtractionMCPServer that never reaches a real backend."""
        return ExtractionMCPServer(options=offline_options)

    def test_server_initialization(self, server):
        """Test that server initializes correctly."""
        assert server.server is not None
        assert server.extractor is not None
        assert server.server.name == "paper-extraction-mcp"

    def test_list_tools(self, server):
        names = [tool.name for tool in server.list_tools()]
        assert names == ["extract_pdf_metadata", "check_extraction_backends", "classify_pdf"]

    @pytest.mark.asyncio
    async def test_extract_pdf_metadata(self, server, pdf_file):
        """Test extraction from a local file."""
        result = await server.call_tool("extract_pdf_metadata", {"pdf_path": str(pdf_file)})
        text = result[0].text

        assert "**Method:** text-layer" in text
        assert "**Confidence:** medium" in text
        assert f"**Title:** {TITLE}" in text
        assert "## Extraction Notes" in text
        assert "## Full Text Preview" not in text

    @pytest.mark.asyncio
    async def test_extract_pdf_metadata_with_full_text(self, server, pdf_file):
        result = await server.call_tool(
            "extract_pdf_metadata",
            {"pdf_path": str(pdf_file), "include_full_text": True, "max_timeout_ms": 20000},
        )
        assert "## Full Text Preview" in result[0].text

    @pytest.mark.asyncio
    async def test_extract_missing_file(self, server, tmp_path):
        result = await server.call_tool("extract_pdf_metadata", {"pdf_path": str(tmp_path / "missing.pdf")})
        assert result[0].text.startswith("Error: PDF not found")

    @pytest.mark.asyncio
    async def test_classify_pdf(self, server, pdf_file):
        result = await server.call_tool("classify_pdf", {"pdf_path": str(pdf_file)})
        text = result[0].text

        assert "**Scanned:** no" in text
        assert "**Pages:** 3" in text

    @pytest.mark.asyncio
    async def test_check_backends(self, server, backends):
        with patch("paper_extraction_mcp.server.pytesseract.get_tesseract_version",
                   side_effect=EnvironmentError("tesseract is not installed")):
            result = await server.call_tool("check_extraction_backends", {"grobid_url": backends.base_url})
        text = result[0].text

        assert "✅ reachable" in text
        assert "**Tesseract:** ❌ not installed" in text
        assert "**OCR tier:** disabled" in text

    @pytest.mark.asyncio
    async def test_check_backends_unreachable(self, server):
        with patch("paper_extraction_mcp.server.pytesseract.get_tesseract_version", return_value="5.3.0"):
            result = await server.call_tool("check_extraction_backends", {})
        text = result[0].text

        assert "❌ unreachable" in text
        assert "**Tesseract:** ✅ 5.3.0" in text

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        result = await server.call_tool("search_papers", {})
        assert result[0].text == "Error: Unknown tool: search_papers"

    def test_format_fallback_result(self, server):
        """Test formatting of a placeholder result."""
        record = PartialRecord(title="Extraction Failed", authors=["Unknown"], full_text="PDF content extraction failed")
        result = ExtractionResult.from_record(
            record, ExtractionMethod.FALLBACK, 12, ["All extraction methods failed"]
        )

        text = server._format_extraction(result, "/tmp/scan.pdf", include_full_text=False)

        assert "**File:** scan.pdf" in text
        assert "**Method:** fallback" in text
        assert "**Confidence:** low" in text
        assert "- All extraction methods failed" in text
        assert "**Scanned:**" not in text


if __name__ == "__main__":
    pytest.main([__file__])
