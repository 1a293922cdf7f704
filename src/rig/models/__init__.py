"""Data models shared across rig modules."""

from rig.models.resource_models import (
    CostBreakdownItem,
    CostEstimate,
    LogEntry,
    MetricsResult,
    OperationResult,
    ProviderConfig,
    Resource,
    ResourceListing,
    ResourceType,
    ValidationResult,
)
from rig.models.session_models import SessionContext, SessionState

__all__ = [
    "CostBreakdownItem",
    "CostEstimate",
    "LogEntry",
    "MetricsResult",
    "OperationResult",
    "ProviderConfig",
    "Resource",
    "ResourceListing",
    "ResourceType",
    "SessionContext",
    "SessionState",
    "ValidationResult",
]
