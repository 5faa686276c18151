#!/usr/bin/env python3
"""Wrapper to ensure clean MCP server startup."""

import io
import sys

# Immediately redirect stdout to prevent any output during imports
_null_stdout = io.StringIO()
sys.stdout = _null_stdout


def main():
    """Run the MCP server with stdout protection."""
    from paper_extraction_mcp.server import main as server_main

    # Restore stdout for MCP protocol
    sys.stdout = sys.__stdout__

    server_main()


if __name__ == "__main__":
    main()
