#!/usr/bin/env python3
"""Check which extraction backends are available."""

import os
import shutil
import subprocess

import requests

GROBID_URL = os.getenv("GROBID_URL", "http://localhost:8070").rstrip("/")
CROSSREF_URL = os.getenv("CROSSREF_URL", "https://api.crossref.org/works").rstrip("/")


def check_grobid():
    """Check if the GROBID server is alive."""
    try:
        response = requests.get(f"{GROBID_URL}/api/isalive", timeout=5)
        return response.status_code == 200
    except requests.RequestException:
        return False


def check_tesseract():
    """Return the Tesseract version line, or None if the binary is missing."""
    cmd = os.getenv("TESSERACT_CMD") or shutil.which("tesseract")
    if not cmd:
        return None
    try:
        result = subprocess.run([cmd, "--version"], capture_output=True, text=True, timeout=10)
    except (subprocess.TimeoutExpired, OSError):
        return None
    if result.returncode != 0:
        return None
    output = (result.stdout or result.stderr).strip()
    return output.splitlines()[0] if output else "unknown version"


def check_crossref():
    """Check if the Crossref works API answers a known DOI."""
    try:
        response = requests.get(f"{CROSSREF_URL}/10.1038/nature14539", timeout=10)
        return response.status_code == 200
    except requests.RequestException:
        return False


def main():
    print("🔧 Checking PDF extraction backends:")
    print()

    grobid_ok = check_grobid()
    tesseract_version = check_tesseract()
    crossref_ok = check_crossref()
    ocr_enabled = os.getenv("ENABLE_OCR", "").strip().lower() in ("1", "true", "yes", "on")

    print(f"🌐 Crossref ({CROSSREF_URL}): {'✅ Reachable' if crossref_ok else '❌ Unreachable'}")

    print(f"🐳 GROBID ({GROBID_URL}): {'✅ Running' if grobid_ok else '❌ Not running'}")
    if not grobid_ok:
        print("   Start: docker run --rm -it --init -p 8070:8070 lfoppiano/grobid:0.8.0")

    print(f"🔎 Tesseract: {'✅ ' + tesseract_version if tesseract_version else '❌ Not installed'}")
    if not tesseract_version:
        print("   Install: apt-get install tesseract-ocr (or set TESSERACT_CMD)")

    print()
    print("📊 Available tiers:")
    print(f"  DOI lookup (Crossref): {'✅' if crossref_ok else '❌'}")
    print(f"  Structured parse (GROBID): {'✅' if grobid_ok else '❌'}")
    print("  Text layer (pdfplumber/PyPDF2): ✅ Always available")
    if tesseract_version and ocr_enabled:
        print("  OCR (Tesseract): ✅ Enabled")
    elif tesseract_version:
        print("  OCR (Tesseract): ⚠️ Installed but disabled (set ENABLE_OCR=true)")
    else:
        print("  OCR (Tesseract): ❌ Not available")


if __name__ == "__main__":
    main()
