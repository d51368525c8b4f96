"""
Endpoint Manager - URL deduplication and parameter extraction.

This module sits between the CDX paginator and the report builder. The
index server collapses rows by URL key within a query, but the same URL can
come back on later pages with a different timestamp or status code, so
every URL is checked against a per-domain seen set before it becomes an
endpoint.

Features:
1. Exact-string URL deduplication
2. Query parameter name extraction (order and repeats preserved)
3. Method inference per endpoint
4. Progress notification per new endpoint
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import structlog

from .endpoint import Endpoint
from .method_inference import infer_method


# Query strings are silently cut to this many characters before splitting
QUERY_BUFFER_SIZE = 512
MAX_QUERY_LENGTH = QUERY_BUFFER_SIZE - 1


@dataclass
class DeduplicationStats:
    """Statistics for URL deduplication"""
    observed: int = 0
    unique: int = 0
    duplicates: int = 0
    rejected: int = 0


class URLDeduplicator:
    """
    Set of URLs already seen for one domain.

    Example:
        >>> seen = URLDeduplicator()
        >>> seen.observe("https://example.com/a")
        True
        >>> seen.observe("https://example.com/a")
        False
    """

    def __init__(self):
        self._seen: Set[str] = set()
        self.stats = DeduplicationStats()
        self.logger = structlog.get_logger(__name__)

    def observe(self, url: Any) -> bool:
        """
        Record a URL if it has not been seen before.

        Args:
            url: Candidate URL; empty or non-string input is rejected

        Returns:
            True if the URL is new, False if seen before or invalid
        """
        self.stats.observed += 1

        if not isinstance(url, str) or not url:
            self.stats.rejected += 1
            return False

        if url in self._seen:
            self.stats.duplicates += 1
            self.logger.debug("url_duplicate", url=url)
            return False

        self._seen.add(url)
        self.stats.unique += 1
        return True

    def clear(self):
        """Forget every URL and reset statistics"""
        self._seen.clear()
        self.stats = DeduplicationStats()

    def __contains__(self, url: object) -> bool:
        return url in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __repr__(self) -> str:
        return (
            f"URLDeduplicator("
            f"unique={self.stats.unique}, "
            f"duplicates={self.stats.duplicates}, "
            f"rejected={self.stats.rejected})"
        )


def extract_parameters(url: str) -> Tuple[str, ...]:
    """
    Extract query parameter names from a URL.

    Only names are kept. Repeated names are kept once per occurrence, in
    the order they appear. Empty tokens ("a=1&&b=2") and empty names
    ("=value") are skipped.

    Args:
        url: URL to inspect

    Returns:
        Tuple of parameter names (empty if the URL has no "?")
    """
    _, qmark, query = url.partition("?")
    if not qmark:
        return ()

    names: List[str] = []
    # Bound counts characters, not UTF-8 bytes
    for token in query[:MAX_QUERY_LENGTH].split("&"):
        name = token.split("=", 1)[0]
        if name:
            names.append(name)

    return tuple(names)


class EndpointExtractor:
    """
    Turns newly seen URLs into Endpoint records.

    Observers are called once per new endpoint with the Endpoint object;
    the CLI uses this to print one progress line per endpoint.

    Example:
        >>> extractor = EndpointExtractor()
        >>> endpoint = extractor.extract("https://x.com/login?user=a&pass=b")
        >>> endpoint.method.value, endpoint.parameters
        ('POST', ('user', 'pass'))
    """

    def __init__(self):
        self.extracted_count = 0
        self.by_method: Dict[str, int] = {}
        self.observers: List[Callable[[Endpoint], None]] = []
        self.logger = structlog.get_logger(__name__)

    def subscribe(self, observer: Callable[[Endpoint], None]):
        """
        Subscribe to new endpoints.

        Args:
            observer: Callback receiving each extracted Endpoint
        """
        self.observers.append(observer)

    def extract(self, url: str, mimetype: Optional[str] = None) -> Endpoint:
        """
        Build the Endpoint record for a URL.

        Args:
            url: URL accepted by the deduplicator
            mimetype: Captured mimetype used as a method hint

        Returns:
            Endpoint with inferred method and parameter names
        """
        endpoint = Endpoint(
            url=url,
            method=infer_method(url, mimetype),
            parameters=extract_parameters(url),
        )

        self.extracted_count += 1
        method = endpoint.method.value
        self.by_method[method] = self.by_method.get(method, 0) + 1

        self.logger.debug(
            "endpoint_extracted",
            url=url,
            method=method,
            params=len(endpoint.parameters),
        )
        self._notify_observers(endpoint)

        return endpoint

    def _notify_observers(self, endpoint: Endpoint):
        """Notify all observers of a new endpoint"""
        for observer in self.observers:
            try:
                observer(endpoint)
            except MemoryError:
                raise
            except Exception as e:
                self.logger.error(
                    "observer_error",
                    observer=getattr(observer, "__name__", repr(observer)),
                    error=str(e),
                )

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get extraction statistics.

        Returns:
            Dictionary with total count and count per method
        """
        return {
            "extracted": self.extracted_count,
            "by_method": dict(self.by_method),
        }
