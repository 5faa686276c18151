"""Shared fixtures: generated PDFs, stub HTTP backends and a fake OCR engine."""

import asyncio
from pathlib import Path
from typing import List

import fitz  # PyMuPDF
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from paper_extraction_mcp.config import ExtractionOptions


TITLE = "Residual Learning for Deep Image Recognition"

FIRST_PAGE = """Residual Learning for Deep Image Recognition
Kaiming He, Xiangyu Zhang and Shaoqing Ren
Department of Computer Science
Published in Journal of Vision Research, 2016

Abstract
Deeper neural networks are more difficult to train. We present a
residual learning framework to ease the training of networks that
are substantially deeper than those used previously. We provide
evidence that these residual networks are easier to optimize.
Keywords: deep learning, residual networks

1 Introduction
Deep convolutional networks have led to a series of breakthroughs
for image classification. Recent evidence reveals that network
depth is of crucial importance for many visual recognition tasks.
"""

BODY_PAGE = """2 Related Work
Residual representations are widely used in image retrieval and
classification. Shortcut connections have been studied for a long
time in the training of multi-layer perceptrons and highway nets.
3 Method
We let the stacked nonlinear layers fit a residual mapping instead
of the desired underlying mapping. The formulation can be realized
by feedforward neural networks with shortcut connections that skip
one or more layers and perform identity mapping.
"""

DOI_FIRST_PAGE = """Residual Learning for Deep Image Recognition
Kaiming He, Xiangyu Zhang and Shaoqing Ren
DOI: 10.1234/abc.def
Abstract
Deeper neural networks are more difficult to train. We present a
residual learning framework to ease the training of deep networks.
"""

SAMPLE_TEI = """<?xml version="1.0" encoding="UTF-8"?>
<TEI xmlns="http://www.tei-c.org/ns/1.0">
  <teiHeader>
    <fileDesc>
      <titleStmt>
        <title level="a" type="main">Attention Is All You Need</title>
      </titleStmt>
      <publicationStmt>
        <date type="published" when="2017-06-12">12 June 2017</date>
      </publicationStmt>
      <sourceDesc>
        <biblStruct>
          <analytic>
            <author>
              <persName><forename type="first">Ashish</forename><surname>Vaswani</surname></persName>
            </author>
            <author>
              <persName><forename type="first">Noam</forename><surname>Shazeer</surname></persName>
            </author>
            <title level="a" type="main">Attention Is All You Need</title>
          </analytic>
          <monogr>
            <title level="m">Advances in Neural Information Processing Systems</title>
            <imprint><date type="published" when="2017"/></imprint>
          </monogr>
          <idno type="DOI">10.5555/3295222.3295349</idno>
        </biblStruct>
      </sourceDesc>
    </fileDesc>
    <profileDesc>
      <abstract><div><p>The dominant sequence transduction models are based on
      recurrent or convolutional neural networks.</p></div></abstract>
    </profileDesc>
  </teiHeader>
  <text>
    <body>
      <div><head>Introduction</head><p>Recurrent neural networks have been
      firmly established as state of the art approaches.</p></div>
    </body>
  </text>
</TEI>
"""

TEI_WITHOUT_BODY = """<?xml version="1.0" encoding="UTF-8"?>
<TEI xmlns="http://www.tei-c.org/ns/1.0">
  <teiHeader>
    <fileDesc>
      <titleStmt><title level="a" type="main">A Title Without Any Body Text</title></titleStmt>
    </fileDesc>
  </teiHeader>
  <text><body></body></text>
</TEI>
"""

CROSSREF_WORK = {
    "status": "ok",
    "message-type": "work",
    "message": {
        "DOI": "10.1234/abc.def",
        "title": ["Deep Residual Learning for Image Recognition"],
        "author": [
            {"given": "Kaiming", "family": "He", "sequence": "first"},
            {"given": "Xiangyu", "family": "Zhang", "sequence": "additional"},
            {"name": "ResNet Consortium", "sequence": "additional"},
        ],
        "container-title": ["Proceedings of the IEEE Conference on Computer Vision"],
        "abstract": "<jats:p>Deeper neural networks are more difficult to train.</jats:p>",
        "published-print": {"date-parts": [[2016, 6]]},
        "issued": {"date-parts": [[2015]]},
    },
}


def make_pdf(pages: List[str]) -> bytes:
    """Build a PDF with one page per entry; an empty entry gives a blank page."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def text_rich_pdf() -> bytes:
    return make_pdf([FIRST_PAGE, BODY_PAGE, BODY_PAGE])


@pytest.fixture
def doi_pdf() -> bytes:
    return make_pdf([DOI_FIRST_PAGE, BODY_PAGE])


@pytest.fixture
def scanned_pdf() -> bytes:
    """Five pages with no embedded text, the way an image-only scan reads."""
    return make_pdf(["", "", "", "", ""])


@pytest.fixture
def single_blank_page_pdf() -> bytes:
    return make_pdf([""])


@pytest.fixture
def pdf_file(tmp_path, text_rich_pdf) -> Path:
    path = tmp_path / "paper.pdf"
    path.write_bytes(text_rich_pdf)
    return path


class StubBackends:
    """In-process stand-in for GROBID and the Crossref works API."""

    def __init__(self):
        self.grobid_alive = True
        self.grobid_status = 200
        self.tei = SAMPLE_TEI
        self.grobid_delay = 0.0
        self.crossref_status = 200
        self.crossref_body = CROSSREF_WORK
        self.calls = []
        self.upload_fields = []
        self.user_agents = []

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/isalive", self.isalive)
        app.router.add_post("/api/processFulltextDocument", self.process_fulltext)
        app.router.add_get("/works/{doi:.+}", self.works)
        return app

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call == name)

    async def isalive(self, request):
        self.calls.append("isalive")
        if not self.grobid_alive:
            return web.Response(status=503, text="false")
        return web.Response(text="true")

    async def process_fulltext(self, request):
        self.calls.append("process")
        form = await request.post()
        self.upload_fields.append(sorted(form.keys()))
        if self.grobid_delay:
            await asyncio.sleep(self.grobid_delay)
        return web.Response(status=self.grobid_status, text=self.tei, content_type="application/xml")

    async def works(self, request):
        self.calls.append(f"crossref:{request.match_info['doi']}")
        self.user_agents.append(request.headers.get("User-Agent"))
        if self.crossref_status != 200:
            return web.Response(status=self.crossref_status, text="Resource not found.")
        return web.json_response(self.crossref_body)


@pytest.fixture
async def backends():
    stub = StubBackends()
    server = TestServer(stub.app())
    await server.start_server()
    stub.base_url = f"http://{server.host}:{server.port}"
    yield stub
    await server.close()


@pytest.fixture
def options(backends) -> ExtractionOptions:
    return ExtractionOptions(
        grobid_url=backends.base_url,
        crossref_url=f"{backends.base_url}/works",
        enable_ocr=False,
        max_timeout_ms=10000,
    )


@pytest.fixture
def offline_options() -> ExtractionOptions:
    """Options pointing at a port nothing listens on."""
    return ExtractionOptions(
        grobid_url="http://127.0.0.1:9",
        crossref_url="http://127.0.0.1:9/works",
        enable_ocr=False,
        max_timeout_ms=10000,
    )


class FakeOCREngine:
    """Engine double recording its lifecycle instead of running Tesseract."""

    def __init__(self, text: str = "", fail: bool = False, delay: float = 0.0):
        self.text = text
        self.fail = fail
        self.delay = delay
        self.started = False
        self.release_count = 0
        self.recognized = []

    def start(self):
        self.started = True

    async def recognize(self, image_path, timeout_s):
        self.recognized.append(Path(image_path).name)
        assert Path(image_path).exists()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("engine crashed")
        return self.text

    def release(self):
        self.release_count += 1


OCR_PAGE_TEXT = """A Study of Scanned Historical Documents
This page was recognized from a raster image of the original print.
The survey covers archives digitized between 1995 and 2005 and the
methods used to recover their content for later analysis.
"""


@pytest.fixture
def fake_engine() -> FakeOCREngine:
    return FakeOCREngine(text=OCR_PAGE_TEXT)
