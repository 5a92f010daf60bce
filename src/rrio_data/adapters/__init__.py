"""
Adapters between the RRIO backend and the dashboard data layer.

``adapters.api`` holds the HTTP clients; ``adapters.probe`` wraps a client
into an endpoint verification routine for the CLI. Only the shared base types
are re-exported here so the validation layer can import them without pulling
in the clients.
"""

from .base import AdapterError, EndpointAdapter, VerificationResult

__all__ = [
    "AdapterError",
    "EndpointAdapter",
    "VerificationResult",
]
