"""Vendorize package root."""

from vendorize.exceptions import (
    ConfigurationError,
    CopyFailed,
    PreexistingSkipped,
    ResolutionFailed,
    RewriteFailed,
    VendorizeError,
)
from vendorize.model import RunResult, Unit, VendorEvent
from vendorize.runner import run_vendorize

__all__ = [
    "__version__",
    "ConfigurationError",
    "CopyFailed",
    "PreexistingSkipped",
    "ResolutionFailed",
    "RewriteFailed",
    "RunResult",
    "Unit",
    "VendorEvent",
    "VendorizeError",
    "run_vendorize",
]

__version__ = "0.1.0"
