"""
Service-layer helpers orchestrating the endpoint catalogue, clients and execution context.
"""

from .analysis import create_correlation_analysis, create_scenario_analysis
from .dashboard import DashboardServices, SnapshotEntry

__all__ = ["DashboardServices", "SnapshotEntry", "create_correlation_analysis", "create_scenario_analysis"]
