"""
Base types shared by all backend adapters.

Clients fetch and shape data; adapters answer the narrower question "is this
endpoint reachable and returning something usable?" for the CLI probes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol


class AdapterError(RuntimeError):
    """Raised when an adapter or client encounters a non-recoverable error."""


@dataclass(slots=True)
class VerificationResult:
    """
    Structured response returned by adapter verification routines.

    Attributes
    ----------
    success:
        Indicates whether the verification succeeded.
    message:
        Human-readable summary.
    details:
        Optional structured metadata such as status code, latency or the
        validation errors encountered.
    """

    success: bool
    message: str
    details: Optional[Mapping[str, object]] = None


class EndpointAdapter(Protocol):
    """Protocol implemented by endpoint probes."""

    def verify(self) -> VerificationResult:
        """Perform a lightweight connectivity and shape check."""

    @property
    def endpoint_id(self) -> str:
        """Identifier matching the catalogue descriptor."""
