"""
Recon Runner - main pipeline that processes one domain at a time.

For each domain the runner:
1. Pages through the CDX index
2. Deduplicates archived URLs
3. Extracts endpoints (method + parameter names)
4. Sorts and writes the report

Domains are processed strictly one after another; per-domain state is
created fresh for each domain and dropped once its report is written.

Usage:
    runner = ReconRunner(config)
    result = await runner.process_domain("example.com")
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog

from ..crawler.cdx_client import CdxPaginator, CdxTransport
from ..crawler.endpoint import Endpoint
from ..crawler.endpoint_manager import EndpointExtractor, URLDeduplicator
from ..reporting.report_builder import ReportBuilder, per_domain_path
from .config import DomainQuery, ReconConfig
from .exceptions import InvalidDomainError, ReconError


def default_transport_factory(config: ReconConfig) -> CdxTransport:
    return CdxTransport(timeout=config.timeout, user_agent=config.user_agent)


@dataclass
class DomainResult:
    """Outcome of processing one domain"""
    domain: str
    output_path: Optional[Path] = None
    endpoint_count: int = 0
    pages_fetched: int = 0
    duplicate_count: int = 0
    stop_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "domain": self.domain,
            "output_path": str(self.output_path) if self.output_path else None,
            "endpoints": self.endpoint_count,
            "pages_fetched": self.pages_fetched,
            "duplicates": self.duplicate_count,
            "stop_reason": self.stop_reason,
            "error": self.error,
        }


class ReconRunner:
    """
    Runs the recon pipeline for one or more domains.

    Observers receive (event, data) pairs:
    - "domain_started": {"domain"}
    - "query": {"domain", "url"}
    - "endpoint_discovered": {"domain", "endpoint"}
    - "domain_completed": {"domain", "result"}
    - "domain_failed": {"domain", "error", "invalid_domain"}

    Example:
        >>> runner = ReconRunner(ReconConfig(limit=1000))
        >>> runner.subscribe(lambda event, data: print(event))
        >>> results = await runner.run(["example.com", "example.org"])
    """

    def __init__(
        self,
        config: Optional[ReconConfig] = None,
        transport_factory: Optional[Callable[[ReconConfig], Any]] = None,
    ):
        """
        Initialize recon runner.

        Args:
            config: Recon configuration
            transport_factory: Builds an async context manager exposing
                get_json(url); defaults to the aiohttp CDX transport
        """
        self.config = config or ReconConfig()
        self.transport_factory = transport_factory or default_transport_factory

        self.results: List[DomainResult] = []
        self.observers: List[Callable[[str, Dict[str, Any]], None]] = []

        self.logger = structlog.get_logger(__name__)

    def subscribe(self, observer: Callable[[str, Dict[str, Any]], None]):
        """
        Subscribe to runner events (Observer pattern).

        Args:
            observer: Callback function for events
        """
        self.observers.append(observer)

    def _notify_observers(self, event: str, data: Dict[str, Any]):
        """Notify all observers of an event"""
        for observer in self.observers:
            try:
                observer(event, data)
            except MemoryError:
                raise
            except Exception as e:
                self.logger.error(
                    "observer_error",
                    observer=getattr(observer, "__name__", repr(observer)),
                    error=str(e),
                )

    def output_path_for(self, domain: str) -> Path:
        """Output file for a domain (shared unless per_domain is set)"""
        if self.config.per_domain:
            return per_domain_path(self.config.output, domain)
        return Path(self.config.output)

    async def process_domain(self, domain: str) -> DomainResult:
        """
        Run the full pipeline for one domain.

        Pagination stops quietly on transport or decode errors; whatever was
        collected up to that point is still written.

        Args:
            domain: Target domain (e.g. "example.com")

        Returns:
            DomainResult for the domain

        Raises:
            InvalidDomainError: If the domain is empty or too long
            ReportWriteError: If the report cannot be written
        """
        query = DomainQuery.from_domain(domain, self.config)
        self._notify_observers("domain_started", {"domain": domain})
        self.logger.info("domain_started", domain=domain, target=query.target, limit=self.config.limit)

        seen = URLDeduplicator()
        extractor = EndpointExtractor()
        builder = ReportBuilder(sort_desc=self.config.sort_desc)

        def on_endpoint(endpoint: Endpoint):
            self._notify_observers("endpoint_discovered", {"domain": domain, "endpoint": endpoint})

        def on_query(url: str):
            self._notify_observers("query", {"domain": domain, "url": url})

        extractor.subscribe(on_endpoint)

        async with self.transport_factory(self.config) as transport:
            paginator = CdxPaginator(query, transport, on_query=on_query)

            async for page in paginator.iter_pages():
                for row in page.rows:
                    if seen.observe(row.original):
                        builder.add(extractor.extract(row.original, row.mimetype))

        output_path = builder.write(self.output_path_for(domain))

        result = DomainResult(
            domain=domain,
            output_path=output_path,
            endpoint_count=len(builder),
            pages_fetched=paginator.pages_fetched,
            duplicate_count=seen.stats.duplicates,
            stop_reason=paginator.stop_reason,
        )

        self.logger.info(
            "domain_completed",
            domain=domain,
            endpoints=result.endpoint_count,
            pages=result.pages_fetched,
            duplicates=result.duplicate_count,
            stop_reason=result.stop_reason,
            by_method=extractor.get_statistics()["by_method"],
        )
        self._notify_observers("domain_completed", {"domain": domain, "result": result})

        return result

    async def run(self, domains: Iterable[str]) -> List[DomainResult]:
        """
        Process domains sequentially.

        A failing domain is reported and skipped; the next one still runs.

        Args:
            domains: Domains to process

        Returns:
            One DomainResult per domain, in input order
        """
        for domain in domains:
            try:
                result = await self.process_domain(domain)
            except ReconError as e:
                self.logger.error("domain_failed", domain=domain, error=str(e))
                self._notify_observers("domain_failed", {
                    "domain": domain,
                    "error": str(e),
                    "invalid_domain": isinstance(e, InvalidDomainError),
                })
                result = DomainResult(domain=domain, error=str(e))

            self.results.append(result)

        return self.results

    def get_summary(self) -> str:
        """
        Get human-readable summary of processed domains.

        Returns:
            Formatted summary string
        """
        succeeded = [r for r in self.results if r.success]
        failed = [r for r in self.results if not r.success]

        lines = [
            f"Domains processed: {len(self.results)}",
            f"  Succeeded: {len(succeeded)}",
            f"  Failed: {len(failed)}",
            f"Endpoints written: {sum(r.endpoint_count for r in succeeded)}",
        ]
        for result in failed:
            lines.append(f"  {result.domain}: {result.error}")

        return "\n".join(lines)
