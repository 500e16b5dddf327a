"""Error types shared by the service clients and the UI.

Every upstream failure surfaces as a `TravelAPIError` subclass so the page
handlers can catch one type and show `str(e)` to the user.
"""

from __future__ import annotations

from typing import Optional


class TravelAPIError(RuntimeError):
    """Actionable provider error (safe to show to users)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, provider: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


class NotFound(TravelAPIError):
    """Country lookup miss."""


class ServiceError(TravelAPIError):
    """Generic non-success upstream status or network failure."""


class InvalidRate(TravelAPIError):
    """The rate table has no entry for the requested currency."""


class AuthError(TravelAPIError):
    """Bearer credential could not be acquired."""


class NoOffers(TravelAPIError):
    """The fare search returned an empty result set."""


class WatchValidationError(ValueError):
    """Rejected add-watch input."""
