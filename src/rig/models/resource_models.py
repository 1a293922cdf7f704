"""
Resource Data Models

Normalized records shared by every cloud provider.

Philosophy:
- Single responsibility: provider-neutral data structures only
- Zero dependencies: no imports from other rig modules
- No None leaks: missing provider fields become empty strings
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ResourceType(str, Enum):
    """Resource types accepted by list_resources."""

    INSTANCES = "instances"
    STORAGE = "storage"
    NETWORK = "network"
    DATABASE = "database"
    LOADBALANCER = "loadbalancer"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


def as_text(value: Any) -> str:
    """Convert an optional provider field to a string ("" for missing)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def last_segment(value: Any) -> str:
    """Return the last path segment of a self-link style URL."""
    text = as_text(value)
    return text.rstrip("/").split("/")[-1] if text else ""


@dataclass(frozen=True)
class Resource:
    """Normalized cloud resource record.

    Attributes:
        id: Provider identifier (never empty for listed resources)
        name: Display name (never empty for listed resources)
        type: Provider-specific type (machine type, "Cloud Storage", ...)
        status: Provider status string
        region: Region or zone
        created_at: Creation timestamp as reported by the provider
        extra: Additional string attributes (IPs, tier, location, ...)
    """

    id: str
    name: str
    type: str = ""
    status: str = ""
    region: str = ""
    created_at: str = ""
    extra: dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        id: Any = None,
        name: Any = None,
        type: Any = None,
        status: Any = None,
        region: Any = None,
        created_at: Any = None,
        **extra: Any,
    ) -> "Resource | None":
        """Build a resource from raw provider fields.

        A record missing its id takes its name and vice versa. Returns None when
        both are missing so callers can drop the record.
        """
        resource_id = as_text(id)
        resource_name = as_text(name)
        if not resource_id and not resource_name:
            return None
        return cls(
            id=resource_id or resource_name,
            name=resource_name or resource_id,
            type=as_text(type),
            status=as_text(status),
            region=as_text(region),
            created_at=as_text(created_at),
            extra={key: as_text(value) for key, value in extra.items() if value is not None},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "region": self.region,
            "created_at": self.created_at,
            "extra": dict(self.extra),
        }


@dataclass
class ProviderConfig:
    """Per-provider connection state.

    Populated lazily by the provider's initialize() call.
    """

    credentials_source: str
    region: str
    project_id: str | None = None
    initialized: bool = False


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validate_config. valid is always derived from errors."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors

    @classmethod
    def from_lists(cls, errors: list[str], warnings: list[str]) -> "ValidationResult":
        return cls(errors=tuple(errors), warnings=tuple(warnings))

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


@dataclass(frozen=True)
class CostBreakdownItem:
    """Monthly estimate for a single resource."""

    resource: str
    type: str
    estimated_cost: str


@dataclass(frozen=True)
class CostEstimate:
    """Monthly cost estimate. Amounts are two-decimal strings."""

    monthly_cost: str
    currency: str = "USD"
    breakdown: tuple[CostBreakdownItem, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "monthly_cost": self.monthly_cost,
            "currency": self.currency,
            "breakdown": [
                {"resource": b.resource, "type": b.type, "estimated_cost": b.estimated_cost}
                for b in self.breakdown
            ],
        }


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a create or delete operation."""

    resource_id: str
    status: str
    name: str = ""
    resource_type: str = ""


@dataclass(frozen=True)
class MetricsResult:
    """Metrics for one resource.

    synthetic is True when the backend could not be reached and the values are
    placeholders rather than measurements.
    """

    resource_id: str
    metrics: dict[str, Any]
    synthetic: bool = False
    source: str = ""

    @classmethod
    def fallback(
        cls, resource_id: str, metric_names: list[str] | None, source: str = "fallback"
    ) -> "MetricsResult":
        names = metric_names or ["cpu", "memory", "network"]
        return cls(
            resource_id=resource_id,
            metrics={name: 0.0 for name in names},
            synthetic=True,
            source=source,
        )


@dataclass(frozen=True)
class LogEntry:
    """A single cloud log line."""

    timestamp: str
    severity: str
    message: str


@dataclass(frozen=True)
class ResourceListing:
    """Resources of one type, as returned by CloudManager.list_all_resources.

    error holds the reason a type could not be listed (items is then empty).
    """

    type: str
    items: tuple[Resource, ...] = ()
    error: str = ""


def resource_type_of(item: Resource | Mapping[str, Any]) -> str:
    """Read the type of a Resource or a plain mapping."""
    if isinstance(item, Resource):
        return item.type
    return as_text(item.get("type"))


def resource_name_of(item: Resource | Mapping[str, Any]) -> str:
    """Read the display name of a Resource or a plain mapping."""
    if isinstance(item, Resource):
        return item.name
    return as_text(item.get("name") or item.get("id"))


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
    "ValidationResult",
    "as_text",
    "last_segment",
    "resource_name_of",
    "resource_type_of",
]
