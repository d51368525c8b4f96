"""
Unit tests for the CDX client: query URLs, page parsing, pagination and the
aiohttp transport.

Run with: pytest tests/unit/test_cdx_client.py -v
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from waybackrecon.core.config import DomainQuery, ReconConfig
from waybackrecon.core.exceptions import PayloadDecodeError, TransportError
from waybackrecon.crawler.cdx_client import (
    CdxPaginator,
    CdxTransport,
    StopReason,
    build_query_url,
    parse_page,
    parse_resume_key,
    parse_row,
)


def make_query(domain="example.com", **config):
    return DomainQuery.from_domain(domain, ReconConfig(**config))


class TestBuildQueryUrl:
    """Test suite for build_query_url()"""

    def test_first_page_requests_resume_key(self):
        url = build_query_url("http://example.com", 500)

        assert url == (
            "http://web.archive.org/cdx/search/cdx?url=http://example.com"
            "&matchType=domain&fl=original,timestamp,statuscode,mimetype"
            "&collapse=urlkey&output=json&limit=500&showResumeKey=true"
        )

    def test_later_pages_pass_resume_key(self):
        url = build_query_url("http://example.com", 500, resume_key="com,example)/+20200101")

        assert url.endswith("&limit=500&resumeKey=com,example)/+20200101")
        assert "showResumeKey" not in url

    def test_custom_archive_url(self):
        url = build_query_url("http://example.com", 10, archive_url="https://archive.test/")

        assert url.startswith("https://archive.test/cdx/search/cdx?url=http://example.com&")


class TestParsing:
    """Test suite for payload parsing"""

    def test_parse_row(self):
        row = parse_row(["http://example.com/a", "20200101000000", "200", "text/html"])

        assert row.original == "http://example.com/a"
        assert row.timestamp == "20200101000000"
        assert row.status_code == "200"
        assert row.mimetype == "text/html"

    def test_parse_row_non_string_cells(self):
        row = parse_row(["http://example.com/a", None, 200, None])

        assert row.original == "http://example.com/a"
        assert row.status_code == ""
        assert row.mimetype == ""

    @pytest.mark.parametrize("bad", [
        [],
        ["http://example.com/a", "20200101000000", "200"],
        [None, "20200101000000", "200", "text/html"],
        "http://example.com/a",
        {"original": "http://example.com/a"},
    ])
    def test_parse_row_malformed(self, bad):
        assert parse_row(bad) is None

    def test_parse_page_skips_header(self, cdx_payload, cdx_row):
        page = parse_page(cdx_payload([cdx_row("http://example.com/a")]))

        assert [r.original for r in page.rows] == ["http://example.com/a"]
        assert page.resume_key is None

    def test_parse_page_with_resume_key(self, cdx_payload, cdx_row):
        page = parse_page(cdx_payload([cdx_row("http://example.com/a")], resume_key="KEY"))

        assert [r.original for r in page.rows] == ["http://example.com/a"]
        assert page.resume_key == "KEY"

    def test_parse_page_skips_malformed_rows(self, cdx_payload, cdx_row):
        payload = cdx_payload([
            cdx_row("http://example.com/a"),
            ["broken"],
            cdx_row("http://example.com/b"),
        ])

        page = parse_page(payload)

        assert [r.original for r in page.rows] == ["http://example.com/a", "http://example.com/b"]

    @pytest.mark.parametrize("payload", [
        None,
        {},
        "text",
        [],
        [["original", "timestamp", "statuscode", "mimetype"]],
    ])
    def test_parse_page_unusable_payload(self, payload):
        assert parse_page(payload) is None

    @pytest.mark.parametrize("last_row", [["null"], [""], [None], [], ["a", "b"]])
    def test_no_resume_key(self, last_row):
        assert parse_resume_key([["original"], last_row]) is None

    def test_data_row_is_not_a_resume_key(self, cdx_row):
        """A trailing data row's mimetype must not be taken as a key"""
        assert parse_resume_key([["original"], cdx_row("http://example.com/a")]) is None


class TestCdxPaginator:
    """Test suite for CdxPaginator class"""

    @pytest.mark.asyncio
    async def test_follows_resume_keys(self, fake_transport, cdx_payload, cdx_row):
        transport = fake_transport([
            cdx_payload([cdx_row("http://example.com/a")], resume_key="K1"),
            cdx_payload([cdx_row("http://example.com/b")], resume_key="K2"),
            cdx_payload([cdx_row("http://example.com/c")]),
        ])
        paginator = CdxPaginator(make_query(limit=1), transport)

        pages = [page async for page in paginator.iter_pages()]

        assert [[r.original for r in p.rows] for p in pages] == [
            ["http://example.com/a"],
            ["http://example.com/b"],
            ["http://example.com/c"],
        ]
        assert len(transport.requested_urls) == 3
        assert transport.requested_urls[0].endswith("&limit=1&showResumeKey=true")
        assert transport.requested_urls[1].endswith("&limit=1&resumeKey=K1")
        assert transport.requested_urls[2].endswith("&limit=1&resumeKey=K2")
        assert paginator.stop_reason == StopReason.COMPLETE
        assert paginator.pages_fetched == 3

    @pytest.mark.asyncio
    async def test_null_resume_key_stops(self, fake_transport, cdx_payload, cdx_row):
        transport = fake_transport([
            cdx_payload([cdx_row("http://example.com/a")], resume_key="null"),
            cdx_payload([cdx_row("http://example.com/never")]),
        ])
        paginator = CdxPaginator(make_query(), transport)

        pages = [page async for page in paginator.iter_pages()]

        assert len(pages) == 1
        assert len(transport.requested_urls) == 1
        assert paginator.stop_reason == StopReason.COMPLETE

    @pytest.mark.asyncio
    async def test_transport_error_keeps_earlier_pages(self, fake_transport, cdx_payload, cdx_row):
        transport = fake_transport([
            cdx_payload([cdx_row("http://example.com/a")], resume_key="K1"),
            TransportError("timed out"),
        ])
        paginator = CdxPaginator(make_query(), transport)

        pages = [page async for page in paginator.iter_pages()]

        assert len(pages) == 1
        assert paginator.stop_reason == StopReason.TRANSPORT_ERROR

    @pytest.mark.asyncio
    async def test_decode_error_stops(self, fake_transport):
        transport = fake_transport([PayloadDecodeError("Expecting value")])
        paginator = CdxPaginator(make_query(), transport)

        pages = [page async for page in paginator.iter_pages()]

        assert pages == []
        assert paginator.stop_reason == StopReason.DECODE_ERROR

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [None, [], {"error": "x"}, [["original"]]])
    async def test_empty_or_unexpected_page_stops(self, fake_transport, payload):
        transport = fake_transport([payload])
        paginator = CdxPaginator(make_query(), transport)

        pages = [page async for page in paginator.iter_pages()]

        assert pages == []
        assert paginator.stop_reason == StopReason.EMPTY_PAGE
        assert len(transport.requested_urls) == 1

    @pytest.mark.asyncio
    async def test_on_query_callback(self, fake_transport, cdx_payload, cdx_row):
        queried = []
        transport = fake_transport([cdx_payload([cdx_row("http://example.com/a")])])
        paginator = CdxPaginator(make_query("https://example.com"), transport, on_query=queried.append)

        [page async for page in paginator.iter_pages()]

        assert queried == transport.requested_urls
        assert "url=https://example.com&" in queried[0]

    def test_get_statistics(self, fake_transport):
        paginator = CdxPaginator(make_query(), fake_transport([]))

        stats = paginator.get_statistics()

        assert stats["domain"] == "example.com"
        assert stats["pages_fetched"] == 0
        assert stats["stop_reason"] is None


class TestCdxTransport:
    """Test suite for CdxTransport against a local aiohttp server"""

    @staticmethod
    def make_app(body="", status=200, delay=0.0, seen_agents=None) -> web.Application:
        seen_agents = seen_agents if seen_agents is not None else []

        async def handler(request):
            seen_agents.append(request.headers.get("User-Agent"))
            if delay:
                await asyncio.sleep(delay)
            return web.Response(text=body, status=status, content_type="application/json")

        app = web.Application()
        app.router.add_get("/cdx/search/cdx", handler)
        return app

    @pytest.mark.asyncio
    async def test_decodes_json(self):
        seen_agents = []
        app = self.make_app(
            body='[["original"], ["http://example.com/a", "1", "200", "text/html"]]',
            seen_agents=seen_agents,
        )

        async with TestServer(app) as server:
            async with CdxTransport(timeout=5, user_agent="WaybackRecon/test") as transport:
                payload = await transport.get_json(str(server.make_url("/cdx/search/cdx")))

        assert payload[1][0] == "http://example.com/a"
        assert seen_agents == ["WaybackRecon/test"]

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self):
        async with TestServer(self.make_app(body="")) as server:
            async with CdxTransport(timeout=5) as transport:
                assert await transport.get_json(str(server.make_url("/cdx/search/cdx"))) is None

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        async with TestServer(self.make_app(body="<html>oops</html>")) as server:
            async with CdxTransport(timeout=5) as transport:
                with pytest.raises(PayloadDecodeError):
                    await transport.get_json(str(server.make_url("/cdx/search/cdx")))

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        async with TestServer(self.make_app(body="busy", status=503)) as server:
            async with CdxTransport(timeout=5) as transport:
                with pytest.raises(TransportError):
                    await transport.get_json(str(server.make_url("/cdx/search/cdx")))

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        async with TestServer(self.make_app(body="[]", delay=3)) as server:
            async with CdxTransport(timeout=1) as transport:
                with pytest.raises(TransportError):
                    await transport.get_json(str(server.make_url("/cdx/search/cdx")))

    @pytest.mark.asyncio
    async def test_requires_open_session(self):
        transport = CdxTransport(timeout=5)

        with pytest.raises(RuntimeError):
            await transport.get_json("http://127.0.0.1/cdx/search/cdx")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
