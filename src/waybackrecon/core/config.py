"""
Recon configuration - validated settings for a recon run.

Settings come from three places, lowest precedence first:
1. Built-in defaults on ReconConfig
2. An optional YAML config file (-c/--config)
3. Command line flags

Everything is validated before any request is sent to the index server.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .. import __version__
from .exceptions import ConfigurationError, InvalidDomainError


DEFAULT_OUTPUT = "endpoints.json"
DEFAULT_LIMIT = 100_000
DEFAULT_TIMEOUT = 60
MAX_LIMIT = 150_000  # server-side maximum rows per CDX query
MAX_DOMAIN_LENGTH = 253  # RFC 1035
DEFAULT_ARCHIVE_URL = "http://web.archive.org"

logger = structlog.get_logger(__name__)


class ReconConfig(BaseModel):
    """
    Process-lifetime configuration shared by every domain run.

    Example:
        >>> config = ReconConfig(limit=500, sort_order="desc")
        >>> config.sort_desc
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    output: Path = Path(DEFAULT_OUTPUT)
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    timeout: int = Field(default=DEFAULT_TIMEOUT, gt=0)
    verbose: bool = False
    sort_order: Literal["asc", "desc"] = "asc"
    per_domain: bool = False
    archive_url: str = DEFAULT_ARCHIVE_URL
    user_agent: str = f"WaybackRecon/{__version__}"

    @property
    def sort_desc(self) -> bool:
        return self.sort_order == "desc"


@dataclass(frozen=True)
class DomainQuery:
    """A validated target domain plus the configuration it runs under"""
    domain: str
    target: str
    config: ReconConfig

    @classmethod
    def from_domain(cls, domain: str, config: ReconConfig) -> "DomainQuery":
        """
        Validate a domain and prefix a scheme when it has none.

        Args:
            domain: Raw domain as given by the user (e.g. "example.com")
            config: Recon configuration

        Returns:
            DomainQuery with the normalized target

        Raises:
            InvalidDomainError: If the domain is empty or too long
        """
        if not domain or len(domain) > MAX_DOMAIN_LENGTH:
            raise InvalidDomainError("Invalid domain: empty or too long")

        target = domain if "://" in domain else f"http://{domain}"
        return cls(domain=domain, target=target, config=config)


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read recon defaults from a YAML file.

    Keys may use dashes or underscores ("sort-order" or "sort_order").

    Args:
        path: Path to the YAML file

    Returns:
        Mapping of ReconConfig field names to values

    Raises:
        ConfigurationError: If the file is unreadable or not a mapping
    """
    config_path = Path(path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    logger.debug("config_file_loaded", path=str(config_path), keys=sorted(data))
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def build_config(config_file: Optional[Union[str, Path]] = None, **overrides: Any) -> ReconConfig:
    """
    Build a ReconConfig from an optional file plus explicit overrides.

    Overrides whose value is None are ignored so unset CLI flags fall back
    to the file or the defaults.

    Raises:
        ConfigurationError: If any value fails validation
    """
    values: Dict[str, Any] = {}
    if config_file is not None:
        values.update(load_config_file(config_file))

    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return ReconConfig(**values)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {errors}") from e
