"""
Core module - configuration, errors, logging and the recon pipeline.

ReconRunner lives in waybackrecon.core.recon and is not re-exported here,
since the crawler package imports this package's config and exceptions.
"""

from .config import (
    DomainQuery,
    ReconConfig,
    build_config,
    load_config_file,
)
from .exceptions import (
    ConfigurationError,
    InvalidDomainError,
    PayloadDecodeError,
    ReconError,
    ReportWriteError,
    TransportError,
)
from .log_config import configure_logging


__all__ = [
    # Configuration
    "DomainQuery",
    "ReconConfig",
    "build_config",
    "load_config_file",
    "configure_logging",
    # Exceptions
    "ReconError",
    "ConfigurationError",
    "InvalidDomainError",
    "TransportError",
    "PayloadDecodeError",
    "ReportWriteError",
]
