"""
WaybackRecon - Endpoint reconnaissance from the Internet Archive.

Queries the Wayback Machine CDX index for a target domain, extracts the
distinct endpoints and their query parameter names, infers a plausible
HTTP method for each one and writes a sorted JSON report.

Licensed under MIT License
"""

__version__ = "1.9.12"
__author__ = "WaybackRecon Team"
__status__ = "Development"
