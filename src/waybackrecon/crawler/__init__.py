"""
Crawler module - archive-based endpoint discovery.

This package contains:
- CdxPaginator / CdxTransport: paged Wayback Machine CDX queries
- URLDeduplicator: per-domain seen-URL set
- EndpointExtractor: endpoint records with inferred method and parameters
"""

from .endpoint import Endpoint, HttpMethod
from .method_inference import infer_method
from .endpoint_manager import EndpointExtractor, URLDeduplicator, extract_parameters
from .cdx_client import CdxPage, CdxPaginator, CdxRow, CdxTransport, build_query_url


__all__ = [
    # Data structures
    "Endpoint",
    "HttpMethod",
    "CdxPage",
    "CdxRow",
    # Pagination
    "CdxPaginator",
    "CdxTransport",
    "build_query_url",
    # Extraction
    "URLDeduplicator",
    "EndpointExtractor",
    "extract_parameters",
    "infer_method",
]
