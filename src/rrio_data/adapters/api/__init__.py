"""
HTTP clients for the RRIO backend.

Each submodule exposes one client per dashboard group. All clients share
:class:`~rrio_data.adapters.api.base.BaseAPIClient`, which resolves endpoints
from the catalogue, retries transient failures and runs the
validate-then-transform pipeline.
"""

from .ai import AIClient
from .base import BaseAPIClient
from .community import CommunityClient, CommunityInsights
from .errors import (
    APIError,
    DataError,
    FetchTimeoutError,
    HTTPStatusError,
    NetworkError,
    PayloadDecodeError,
    classify_error,
    extract_status_code,
    is_retryable,
)
from .impact import ImpactClient
from .intel import IntelClient
from .ml import MLClient
from .network import NetworkClient
from .operations import OperationsClient
from .retry import FetchConfig, RetryDecision, RetryPhase
from .risk import RiskClient
from .transparency import TransparencyClient

__all__ = [
    "AIClient",
    "BaseAPIClient",
    "CommunityClient",
    "CommunityInsights",
    "APIError",
    "DataError",
    "FetchTimeoutError",
    "HTTPStatusError",
    "NetworkError",
    "PayloadDecodeError",
    "classify_error",
    "extract_status_code",
    "is_retryable",
    "ImpactClient",
    "IntelClient",
    "MLClient",
    "NetworkClient",
    "OperationsClient",
    "FetchConfig",
    "RetryDecision",
    "RetryPhase",
    "RiskClient",
    "TransparencyClient",
]
