"""
Report Builder - sorted JSON output of discovered endpoints.

Endpoints are accumulated as they are extracted, sorted by URL once the
domain is finished, then written as a single pretty-printed, ASCII-escaped
JSON array:

    [
    {
      "url": "https://example.com/login",
      "method": "POST",
      "parameters": [
        "username",
        "password"
      ]
    },
    ...
    ]

The artifact is rendered completely in memory and then moved into place,
so a failure never leaves a half-written file behind.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Union

import structlog

from ..core.exceptions import ReportWriteError
from ..crawler.endpoint import Endpoint


class ReportBuilder:
    """
    Accumulates Endpoint records for one domain and writes the report.

    Example:
        >>> builder = ReportBuilder(sort_desc=False)
        >>> builder.add(endpoint)
        >>> builder.write("endpoints.json")
    """

    def __init__(self, sort_desc: bool = False):
        """
        Initialize report builder.

        Args:
            sort_desc: Sort URLs descending instead of ascending
        """
        self.sort_desc = sort_desc
        self._endpoints: List[Endpoint] = []
        self.skipped_count = 0

        self.logger = structlog.get_logger(__name__)

    def add(self, endpoint: Endpoint):
        """Append an endpoint"""
        self._endpoints.append(endpoint)

    def sorted_endpoints(self) -> List[Endpoint]:
        """
        Get endpoints sorted by URL.

        URLs are unique per domain, so no tie-break is needed.
        """
        return sorted(self._endpoints, key=lambda e: e.url, reverse=self.sort_desc)

    def to_dicts(self) -> List[Dict[str, Any]]:
        """Sorted endpoints as plain dictionaries"""
        return [endpoint.to_dict() for endpoint in self.sorted_endpoints()]

    def render(self) -> str:
        """
        Render the report as JSON text.

        A record that fails to format is logged and left out; the rest of
        the report is still rendered.
        """
        records = []
        self.skipped_count = 0

        for endpoint in self.sorted_endpoints():
            try:
                records.append(json.dumps(endpoint.to_dict(), indent=2, ensure_ascii=True))
            except (TypeError, ValueError, AttributeError) as e:
                self.skipped_count += 1
                self.logger.warning("record_format_failed", url=endpoint.url, error=str(e))

        return "[\n" + ",\n".join(records) + "\n]\n"

    def write(self, path: Union[str, Path]) -> Path:
        """
        Write the report, replacing any existing file.

        Args:
            path: Output file path

        Returns:
            Path written

        Raises:
            ReportWriteError: If the file cannot be written
        """
        output_path = Path(path)
        content = self.render()

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{output_path.name}.",
                suffix=".tmp",
                dir=str(output_path.parent),
            )
            try:
                with os.fdopen(fd, "w", encoding="ascii") as f:
                    f.write(content)
                # mkstemp creates 0600 files
                os.chmod(tmp_name, 0o644)
                os.replace(tmp_name, output_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ReportWriteError(f"Cannot write {output_path}: {e}") from e

        self.logger.info(
            "report_written",
            path=str(output_path),
            endpoints=len(self._endpoints) - self.skipped_count,
            skipped=self.skipped_count,
        )
        return output_path

    def __len__(self) -> int:
        return len(self._endpoints)


def per_domain_path(output: Union[str, Path], domain: str) -> Path:
    """
    Derive a per-domain output path: endpoints.json -> endpoints_example.com.json

    Characters other than letters, digits, dots, dashes and underscores in
    the domain are replaced with "_".
    """
    output_path = Path(output)
    slug = re.sub(r"[^A-Za-z0-9._-]+", "_", domain.split("://", 1)[-1]).strip("_") or "domain"
    return output_path.with_name(f"{output_path.stem}_{slug}{output_path.suffix}")
