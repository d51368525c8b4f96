"""
Endpoint record - one distinct archived URL with its inferred method.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class HttpMethod(str, Enum):
    """HTTP methods the inference heuristic can produce"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Endpoint:
    """Represents a discovered endpoint"""
    url: str
    method: HttpMethod = HttpMethod.GET
    parameters: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "url": self.url,
            "method": self.method.value,
            "parameters": list(self.parameters),
        }

    def describe(self) -> str:
        """Progress line: url | METHOD | param, param (or "none")"""
        params = ", ".join(self.parameters) if self.parameters else "none"
        return f"{self.url} | {self.method.value} | {params}"
