#!/usr/bin/env python3
"""Extract metadata from one PDF and print the result as JSON."""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from paper_extraction_mcp.config import ExtractionOptions
from paper_extraction_mcp.extraction.orchestrator import TieredExtractor


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("pdf_path", type=Path, help="PDF file to extract")
    parser.add_argument("--grobid-url", help="GROBID base URL (default: GROBID_URL or http://localhost:8070)")
    parser.add_argument("--ocr", action="store_true", default=None, help="enable the OCR tier")
    parser.add_argument("--timeout-ms", type=int, help="overall time budget in milliseconds")
    parser.add_argument("--no-full-text", action="store_true", help="omit full_text from the output")
    parser.add_argument("-v", "--verbose", action="store_true", help="log tier progress to stderr")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if not args.pdf_path.is_file():
        print(f"❌ PDF not found: {args.pdf_path}", file=sys.stderr)
        return 1

    options = ExtractionOptions.from_env(
        grobid_url=args.grobid_url,
        enable_ocr=args.ocr,
        max_timeout_ms=args.timeout_ms,
    )
    result = TieredExtractor(options=options).extract_sync(args.pdf_path.read_bytes())

    payload = result.to_dict()
    if args.no_full_text:
        payload.pop("full_text", None)
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
