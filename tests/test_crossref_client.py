"""Tests for the Crossref client."""

import copy

import pytest

from paper_extraction_mcp.api.crossref_client import CrossrefClient
from paper_extraction_mcp.errors import LookupFailed, ParseError, ServiceUnavailable

from conftest import CROSSREF_WORK


class TestWorkMapping:
    """Test mapping Crossref works onto records."""

    @pytest.fixture
    def client(self):
        return CrossrefClient()

    def test_parse_work(self, client):
        """Test a complete journal-article record."""
        record = client.parse_work(CROSSREF_WORK)

        assert record.title == "Deep Residual Learning for Image Recognition"
        assert record.authors == ["Kaiming He", "Xiangyu Zhang", "ResNet Consortium"]
        assert record.venue == "Proceedings of the IEEE Conference on Computer Vision"
        assert record.abstract == "Deeper neural networks are more difficult to train."
        assert record.doi == "10.1234/abc.def"
        assert record.year == "2016"
        assert record.full_text == (
            "Deep Residual Learning for Image Recognition\n\n"
            "Deeper neural networks are more difficult to train."
        )

    def test_year_falls_back_to_issued(self, client):
        work = copy.deepcopy(CROSSREF_WORK)
        del work["message"]["published-print"]
        assert client.parse_work(work).year == "2015"

    def test_minimal_work(self, client):
        record = client.parse_work({"message": {"DOI": "10.1/x", "title": []}})
        assert record.title is None
        assert record.authors == []
        assert record.full_text is None
        assert record.year is None

    def test_jats_abstract_label_removed(self, client):
        work = {"title": ["T"], "abstract": "<jats:title>Abstract</jats:title><jats:p>Body  text.</jats:p>"}
        assert client.parse_work(work).abstract == "Body text."

    def test_non_object_response(self, client):
        with pytest.raises(ParseError):
            client.parse_work(["not", "a", "work"])


class TestCrossrefService:
    """Test lookups against a stub works endpoint."""

    @pytest.mark.asyncio
    async def test_get_work(self, backends):
        async with CrossrefClient(base_url=f"{backends.base_url}/works") as client:
            record = await client.get_work("10.1234/abc.def")

        assert record.title == "Deep Residual Learning for Image Recognition"
        assert backends.calls == ["crossref:10.1234/abc.def"]

    @pytest.mark.asyncio
    async def test_mailto_sent_as_user_agent(self, backends):
        client = CrossrefClient(mailto="lab@example.org", base_url=f"{backends.base_url}/works")
        try:
            await client.get_work("10.1234/abc.def")
        finally:
            await client.close()

        assert "mailto:lab@example.org" in backends.user_agents[0]

    @pytest.mark.asyncio
    async def test_unknown_doi(self, backends):
        backends.crossref_status = 404
        async with CrossrefClient(base_url=f"{backends.base_url}/works") as client:
            with pytest.raises(LookupFailed):
                await client.get_work("10.9999/missing")

    @pytest.mark.asyncio
    async def test_service_error(self, backends):
        backends.crossref_status = 503
        async with CrossrefClient(base_url=f"{backends.base_url}/works") as client:
            with pytest.raises(ServiceUnavailable):
                await client.get_work("10.1234/abc.def")

    @pytest.mark.asyncio
    async def test_record_without_title(self, backends):
        backends.crossref_body = {"message": {"DOI": "10.1234/abc.def", "title": []}}
        async with CrossrefClient(base_url=f"{backends.base_url}/works") as client:
            with pytest.raises(LookupFailed):
                await client.get_work("10.1234/abc.def")


if __name__ == "__main__":
    pytest.main([__file__])
