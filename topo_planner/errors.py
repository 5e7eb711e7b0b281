from __future__ import annotations
from typing import Optional


class TopoPlannerError(Exception):
    pass


class ValidationError(TopoPlannerError):
    """Malformed input or a reference to an undeclared name."""


class CapacityError(TopoPlannerError):
    """A network block cannot hold the requested subnets.

    Carries the requested and available address counts so callers can report
    how far over capacity the request was.
    """

    def __init__(
        self,
        message: str,
        *,
        label: Optional[str] = None,
        requested: int = 0,
        available: int = 0,
        largest_free_prefixlen: Optional[int] = None,
    ):
        super().__init__(message)
        self.label = label
        self.requested = requested
        self.available = available
        self.largest_free_prefixlen = largest_free_prefixlen
