"""Azure provider placeholder.

Azure is registered so that ``rig cloud azure`` resolves to a provider, but no
operation is implemented yet. Every call raises NotImplementedError.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from rig.cancellation import CancellationToken
from rig.models.resource_models import (
    CostEstimate,
    LogEntry,
    MetricsResult,
    OperationResult,
    ProviderConfig,
    Resource,
    ValidationResult,
)
from rig.providers.base import CloudProvider

NOT_IMPLEMENTED = "Azure support is not implemented yet"


class AzureProvider(CloudProvider):
    """Azure provider stub."""

    name = "azure"

    def __init__(self, subscription_id: str | None = None):
        self.config = ProviderConfig(
            credentials_source="none", region="", project_id=subscription_id
        )

    def initialize(
        self, region: str | None = None, cancel_token: CancellationToken | None = None
    ) -> None:
        raise NotImplementedError(NOT_IMPLEMENTED)

    def list_resources(
        self,
        resource_type: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Resource]:
        raise NotImplementedError(NOT_IMPLEMENTED)

    def create_resource(
        self,
        resource_type: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        raise NotImplementedError(NOT_IMPLEMENTED)

    def delete_resource(
        self,
        resource_type: str,
        resource_id: str,
        cancel_token: CancellationToken | None = None,
        **options: Any,
    ) -> OperationResult:
        raise NotImplementedError(NOT_IMPLEMENTED)

    def get_metrics(
        self,
        resource_type: str,
        resource_id: str,
        metrics: list[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> MetricsResult:
        raise NotImplementedError(NOT_IMPLEMENTED)

    def get_logs(
        self,
        resource_type: str,
        resource_name: str,
        hours: int = 1,
        cancel_token: CancellationToken | None = None,
    ) -> list[LogEntry]:
        raise NotImplementedError(NOT_IMPLEMENTED)

    def estimate_cost(self, resources: Iterable[Resource | Mapping[str, Any]]) -> CostEstimate:
        raise NotImplementedError(NOT_IMPLEMENTED)

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        raise NotImplementedError(NOT_IMPLEMENTED)


__all__ = ["AzureProvider"]
