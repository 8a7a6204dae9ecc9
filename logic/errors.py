"""
Exceptions raised by the remote gateway and caught by the engine.

Date: 2026-10-18
"""

from typing import Optional


class GatewayError(Exception):
    """The backend could not be reached or answered with something unusable.

    Attributes:
        status: HTTP status of the response, if one was received.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GatewayRejected(GatewayError):
    """The backend answered and refused the request (401/403)."""
