"""
Exception hierarchy for the vendor check crawler.
"""

from typing import Optional


class VendorCheckError(Exception):
    """Base class for all crawler errors."""


class FatalSessionError(VendorCheckError):
    """The browser session could not be constructed at all."""


class NavigationError(VendorCheckError):
    """A target could not be reached (timeout or network failure)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class BlockedError(NavigationError):
    """The destination is actively refusing automated access."""

    def __init__(self, message: str, url: Optional[str] = None, result=None):
        super().__init__(message, url)
        self.result = result


class InteractionError(VendorCheckError):
    """A best-effort UI step failed. Always handled where it is raised."""


class SearchWorkflowError(VendorCheckError):
    """An in-page search could not be started (no usable input field)."""
