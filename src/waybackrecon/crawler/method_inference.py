"""
Method Inference - guess the HTTP method of an archived endpoint.

The archive only records URLs, so the method is inferred from keywords in
the URL and from the captured mimetype. This is a coarse heuristic: checks
are plain case-sensitive substring matches, and the order of the checks
decides the result (a URL containing both "update" and "delete" is PUT).
"""

from typing import Optional

from .endpoint import HttpMethod


# Any of these in the URL marks the endpoint as state-changing
WRITE_URL_KEYWORDS = (
    "login", "submit", "upload", "create", "update", "delete",
    "api", "json", "graphql",
)
WRITE_MIMETYPE_KEYWORDS = ("json", "xml", "form")

PUT_KEYWORDS = ("update", "patch")
DELETE_KEYWORDS = ("delete", "remove")


def _contains_any(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


def infer_method(url: Optional[str], mimetype: Optional[str] = None) -> HttpMethod:
    """
    Infer the HTTP method for a URL.

    Args:
        url: Archived URL
        mimetype: Captured content type, if any

    Returns:
        GET when nothing suggests a write, otherwise PUT, DELETE or POST
        in that order of precedence
    """
    if not url:
        return HttpMethod.GET
    mimetype = mimetype or ""

    has_write_signal = (
        _contains_any(url, WRITE_URL_KEYWORDS)
        or _contains_any(mimetype, WRITE_MIMETYPE_KEYWORDS)
    )
    if not has_write_signal:
        return HttpMethod.GET

    if _contains_any(url, PUT_KEYWORDS):
        return HttpMethod.PUT
    if _contains_any(url, DELETE_KEYWORDS):
        return HttpMethod.DELETE
    return HttpMethod.POST
