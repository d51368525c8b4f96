"""
Exception hierarchy shared by the recon pipeline.

Configuration errors are fatal and raised before any network activity.
Transport and decode errors are raised per page and end pagination for the
current domain without discarding what was already collected.
"""


class ReconError(Exception):
    """Base exception for recon errors"""
    pass


class ConfigurationError(ReconError):
    """Raised for invalid limit, timeout, sort order or config file"""
    pass


class InvalidDomainError(ConfigurationError):
    """Raised when a domain is empty or longer than a DNS name allows"""
    pass


class TransportError(ReconError):
    """Raised when a CDX page request fails or times out"""
    pass


class PayloadDecodeError(ReconError):
    """Raised when a CDX page body is not valid JSON"""
    pass


class ReportWriteError(ReconError):
    """Raised when the output artifact cannot be written"""
    pass
