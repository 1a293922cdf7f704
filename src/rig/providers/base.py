"""Cloud provider capability interface.

Every provider exposes the same operation surface. The failure policy is
asymmetric on purpose:

- Reads (list_resources, get_metrics, get_logs) log backend failures and
  return empty or synthetic results.
- Writes (create_resource, delete_resource) log backend failures and raise
  ProviderError so the caller knows whether anything changed.
- estimate_cost and validate_config are pure and never touch the network.

Cancellation is not a backend failure: OperationCancelledError propagates
from reads and writes alike.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from rig.cancellation import CancellationToken
from rig.models.resource_models import (
    CostBreakdownItem,
    CostEstimate,
    LogEntry,
    MetricsResult,
    OperationResult,
    ProviderConfig,
    Resource,
    ValidationResult,
    resource_name_of,
    resource_type_of,
)

logger = logging.getLogger(__name__)

HOURS_PER_MONTH = Decimal("730")
DEFAULT_HOURLY_RATE = Decimal("0.01")
CENTS = Decimal("0.01")


def monthly_cost(hourly_rate: Decimal) -> Decimal:
    """Monthly cost for an hourly rate, rounded half-up to cents."""
    return (hourly_rate * HOURS_PER_MONTH).quantize(CENTS, rounding=ROUND_HALF_UP)


class CloudProvider(ABC):
    """Abstract interface for one cloud backend.

    Subclasses set ``name`` and ``HOURLY_RATES`` and implement the abstract
    operations. ``config`` holds the connection state populated by
    ``initialize``.
    """

    name: str = ""

    # USD per hour, keyed by resource type
    HOURLY_RATES: Mapping[str, Decimal] = {}

    config: ProviderConfig

    @abstractmethod
    def initialize(
        self, region: str | None = None, cancel_token: CancellationToken | None = None
    ) -> None:
        """Authenticate and select a region.

        Idempotent: does nothing when already initialized for the same region.

        Raises:
            AuthenticationError: If no valid credentials/session are found
        """

    @abstractmethod
    def list_resources(
        self,
        resource_type: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Resource]:
        """List resources of one type.

        Returns an empty list on any transport or authentication failure.
        """

    @abstractmethod
    def create_resource(
        self,
        resource_type: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        """Create a resource.

        Raises:
            UnsupportedResourceType: Unknown resource type
            ProviderError: Backend failure
        """

    @abstractmethod
    def delete_resource(
        self,
        resource_type: str,
        resource_id: str,
        cancel_token: CancellationToken | None = None,
        **options: Any,
    ) -> OperationResult:
        """Delete a resource.

        Raises:
            UnsupportedResourceType: Unknown resource type
            ProviderError: Backend failure
        """

    @abstractmethod
    def get_metrics(
        self,
        resource_type: str,
        resource_id: str,
        metrics: list[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> MetricsResult:
        """Fetch metrics; returns a synthetic result on backend failure."""

    @abstractmethod
    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        """Check required fields of a resource configuration (no network)."""

    def get_logs(
        self,
        resource_type: str,
        resource_name: str,
        hours: int = 1,
        cancel_token: CancellationToken | None = None,
    ) -> list[LogEntry]:
        """Fetch recent log entries for a resource. Providers without a log
        backend return an empty list."""
        return []

    def hourly_rate(self, resource_type: str) -> Decimal:
        return self.HOURLY_RATES.get(resource_type, DEFAULT_HOURLY_RATE)

    def estimate_cost(self, resources: Iterable[Resource | Mapping[str, Any]]) -> CostEstimate:
        """Estimate the monthly cost of resources from the static rate table.

        Unknown types are priced at DEFAULT_HOURLY_RATE so the total is always
        defined. An e2-micro on GCP (0.0084/h) comes to 6.13 per month.
        """
        total = Decimal("0")
        breakdown = []
        for item in resources:
            resource_type = resource_type_of(item)
            rate = self.hourly_rate(resource_type)
            total += rate * HOURS_PER_MONTH
            breakdown.append(
                CostBreakdownItem(
                    resource=resource_name_of(item),
                    type=resource_type,
                    estimated_cost=str(monthly_cost(rate)),
                )
            )

        return CostEstimate(
            monthly_cost=str(total.quantize(CENTS, rounding=ROUND_HALF_UP)),
            currency="USD",
            breakdown=tuple(breakdown),
        )


__all__ = ["DEFAULT_HOURLY_RATE", "HOURS_PER_MONTH", "CloudProvider", "monthly_cost"]
