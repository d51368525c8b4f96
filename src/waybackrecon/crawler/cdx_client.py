"""
CDX Client - paginated queries against the Wayback Machine CDX server.

The CDX server returns at most `limit` rows per query. On the first query
we ask it to append a resume key; every following query passes the key
back until the server stops returning one.

Page payload (output=json):
    [
        ["original", "timestamp", "statuscode", "mimetype"],   # header
        ["http://example.com/a", "20200101000000", "200", "text/html"],
        ...
        [],
        ["<resume key>"]                                        # optional
    ]

A failed request, an empty body, malformed JSON or an unexpected shape ends
pagination for the domain. Rows already collected are kept.

Reference: https://archive.org/developers/wayback-cdx-server.html
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, List, Optional

import aiohttp
import structlog

from ..core.config import DomainQuery
from ..core.exceptions import PayloadDecodeError, TransportError


CDX_SEARCH_PATH = "/cdx/search/cdx"
CDX_FIELDS = "original,timestamp,statuscode,mimetype"
NO_RESUME_KEY = "null"


@dataclass
class CdxRow:
    """One capture row: [original, timestamp, statuscode, mimetype]"""
    original: str
    timestamp: str = ""
    status_code: str = ""
    mimetype: str = ""


@dataclass
class CdxPage:
    """Rows of one CDX response plus the key for the next page"""
    rows: List[CdxRow] = field(default_factory=list)
    resume_key: Optional[str] = None


class StopReason:
    """Why pagination ended for a domain"""
    COMPLETE = "complete"
    TRANSPORT_ERROR = "transport_error"
    DECODE_ERROR = "decode_error"
    EMPTY_PAGE = "empty_page"


def build_query_url(
    target: str,
    limit: int,
    resume_key: Optional[str] = None,
    archive_url: str = "http://web.archive.org",
) -> str:
    """
    Build the CDX query URL for one page.

    Args:
        target: Scheme-prefixed domain (e.g. "http://example.com")
        limit: Maximum rows per page
        resume_key: Key returned by the previous page, None for the first
        archive_url: Scheme and host of the archive

    Returns:
        Full query URL
    """
    url = (
        f"{archive_url.rstrip('/')}{CDX_SEARCH_PATH}?"
        f"url={target}&matchType=domain&fl={CDX_FIELDS}&"
        f"collapse=urlkey&output=json&limit={limit}"
    )
    if resume_key:
        return f"{url}&resumeKey={resume_key}"
    return f"{url}&showResumeKey=true"


def _cell(row: List[Any], index: int) -> str:
    value = row[index]
    return value if isinstance(value, str) else ""


def parse_row(row: Any) -> Optional[CdxRow]:
    """
    Parse one data row.

    Returns:
        CdxRow, or None if the row is not a list of at least four cells
        with a string URL first
    """
    if not isinstance(row, list) or len(row) < 4:
        return None
    if not isinstance(row[0], str):
        return None

    return CdxRow(
        original=row[0],
        timestamp=_cell(row, 1),
        status_code=_cell(row, 2),
        mimetype=_cell(row, 3),
    )


def parse_resume_key(payload: List[Any]) -> Optional[str]:
    """
    Extract the resume key from the last element of a page payload.

    The key row is a single-cell list. An empty string or the literal
    "null" means there are no more pages.
    """
    last = payload[-1]
    if not isinstance(last, list) or len(last) != 1:
        return None

    key = last[0]
    if not isinstance(key, str) or not key or key == NO_RESUME_KEY:
        return None
    return key


def parse_page(payload: Any) -> Optional[CdxPage]:
    """
    Parse a decoded CDX response.

    Args:
        payload: Decoded JSON body

    Returns:
        CdxPage, or None if the payload is not an array holding at least
        a header and one more element
    """
    if not isinstance(payload, list) or len(payload) < 2:
        return None

    rows = []
    # payload[0] is the header row
    for raw_row in payload[1:]:
        row = parse_row(raw_row)
        if row is not None:
            rows.append(row)

    return CdxPage(rows=rows, resume_key=parse_resume_key(payload))


class CdxTransport:
    """
    aiohttp transport: one GET per page, JSON-decoded.

    Example:
        >>> async with CdxTransport(timeout=60) as transport:
        ...     payload = await transport.get_json(url)
    """

    def __init__(self, timeout: int = 60, user_agent: str = "WaybackRecon"):
        """
        Initialize transport.

        Args:
            timeout: Total timeout per request in seconds
            user_agent: User-Agent header sent to the archive
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.session: Optional[aiohttp.ClientSession] = None

        self.logger = structlog.get_logger(__name__)

    async def __aenter__(self) -> "CdxTransport":
        self.session = aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def get_json(self, url: str) -> Any:
        """
        Fetch a URL and decode its JSON body.

        Args:
            url: URL to fetch

        Returns:
            Decoded JSON, or None for an empty body

        Raises:
            TransportError: On connection failure, timeout or HTTP error
            PayloadDecodeError: If the body is not valid JSON
        """
        if self.session is None:
            raise RuntimeError("Transport not open. Use 'async with CdxTransport(...)'.")

        try:
            async with self.session.get(url, allow_redirects=True) as response:
                if response.status >= 400:
                    raise TransportError(f"HTTP {response.status} for {url}")
                body = await response.text(errors="replace")
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        if not body.strip():
            return None

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise PayloadDecodeError(str(e)) from e


class CdxPaginator:
    """
    Page Fetch Loop for one domain.

    Example:
        >>> paginator = CdxPaginator(query, transport)
        >>> async for page in paginator.iter_pages():
        ...     for row in page.rows:
        ...         print(row.original)
    """

    def __init__(
        self,
        query: DomainQuery,
        transport: Any,
        on_query: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize paginator.

        Args:
            query: Validated domain query
            transport: Object with an async get_json(url) method
            on_query: Called with each query URL before it is sent
        """
        self.query = query
        self.transport = transport
        self.on_query = on_query

        self.pages_fetched = 0
        self.rows_fetched = 0
        self.stop_reason: Optional[str] = None

        self.logger = structlog.get_logger(__name__)

    async def fetch_page(self, resume_key: Optional[str] = None) -> Optional[CdxPage]:
        """
        Fetch and parse one page.

        Args:
            resume_key: Key from the previous page, None for the first page

        Returns:
            Parsed page, or None if the body was empty or not a usable array

        Raises:
            TransportError: If the request failed
            PayloadDecodeError: If the body was not JSON
        """
        config = self.query.config
        url = build_query_url(
            self.query.target,
            config.limit,
            resume_key=resume_key,
            archive_url=config.archive_url,
        )

        if self.on_query:
            self.on_query(url)
        self.logger.info("cdx_query", domain=self.query.domain, url=url)

        payload = await self.transport.get_json(url)
        if payload is None:
            return None
        return parse_page(payload)

    async def iter_pages(self) -> AsyncIterator[CdxPage]:
        """
        Yield pages until the server stops returning a resume key.

        Transport and decode errors end iteration quietly (after logging);
        pages already yielded stay valid.
        """
        resume_key: Optional[str] = None

        while True:
            try:
                page = await self.fetch_page(resume_key)
            except TransportError as e:
                self.stop_reason = StopReason.TRANSPORT_ERROR
                self.logger.error("cdx_transport_error", domain=self.query.domain, error=str(e))
                return
            except PayloadDecodeError as e:
                self.stop_reason = StopReason.DECODE_ERROR
                self.logger.error("cdx_decode_error", domain=self.query.domain, error=str(e))
                return

            if page is None:
                self.stop_reason = StopReason.EMPTY_PAGE
                self.logger.info("cdx_empty_page", domain=self.query.domain, page=self.pages_fetched + 1)
                return

            self.pages_fetched += 1
            self.rows_fetched += len(page.rows)
            self.logger.info(
                "cdx_page_fetched",
                domain=self.query.domain,
                page=self.pages_fetched,
                rows=len(page.rows),
                has_more=page.resume_key is not None,
            )

            yield page

            if page.resume_key is None:
                self.stop_reason = StopReason.COMPLETE
                return
            resume_key = page.resume_key

    def get_statistics(self) -> dict:
        """
        Get pagination statistics.

        Returns:
            Dictionary with statistics
        """
        return {
            "domain": self.query.domain,
            "pages_fetched": self.pages_fetched,
            "rows_fetched": self.rows_fetched,
            "stop_reason": self.stop_reason,
        }

    def __repr__(self) -> str:
        return (
            f"CdxPaginator("
            f"domain={self.query.domain}, "
            f"pages={self.pages_fetched}, "
            f"rows={self.rows_fetched})"
        )
