"""Cloud Manager: routes operations to provider instances.

One CloudManager is created per CLI invocation (or interactive session) and
handed to commands through the click context. Providers are constructed
lazily on first use and reused afterwards; concurrent first use of the same
provider constructs exactly one instance.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from rig.cancellation import CancellationToken
from rig.exceptions import ProviderError, RigError, UnknownProviderError, UnsupportedResourceType
from rig.log_sanitizer import LogSanitizer
from rig.models.resource_models import (
    CostEstimate,
    LogEntry,
    MetricsResult,
    OperationResult,
    Resource,
    ResourceListing,
    ResourceType,
    ValidationResult,
)
from rig.providers.aws import AWSProvider
from rig.providers.azure import AzureProvider
from rig.providers.base import CloudProvider
from rig.providers.gcp import GCPProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], CloudProvider]


def default_factories(
    gcp_project: str | None = None,
    gcp_region: str | None = None,
    aws_region: str | None = None,
) -> dict[str, ProviderFactory]:
    """Factories for the built-in providers."""
    return {
        "aws": lambda: AWSProvider(region=aws_region),
        "gcp": lambda: GCPProvider(project_id=gcp_project, region=gcp_region),
        "azure": AzureProvider,
    }


class CloudManager:
    """Thread-safe provider registry and operation router.

    Args:
        factories: Provider name -> zero-argument constructor
            (default: aws, gcp and azure)
    """

    def __init__(self, factories: Mapping[str, ProviderFactory] | None = None):
        self._factories = {
            name.lower(): factory for name, factory in (factories or default_factories()).items()
        }
        self._providers: dict[str, CloudProvider] = {}
        self._provider_locks: dict[str, threading.Lock] = {}
        self._manager_lock = threading.Lock()

    @property
    def supported_providers(self) -> tuple[str, ...]:
        return tuple(sorted(self._factories))

    def get_provider(self, name: str) -> CloudProvider:
        """Return the provider instance for name (case-insensitive).

        Raises:
            UnknownProviderError: name is not a registered provider
        """
        key = (name or "").lower()
        if key not in self._factories:
            raise UnknownProviderError(name, self.supported_providers)

        # Get or create lock for this specific provider
        with self._manager_lock:
            if key not in self._provider_locks:
                self._provider_locks[key] = threading.Lock()
            provider_lock = self._provider_locks[key]

        # Only one thread per provider constructs it
        with provider_lock:
            provider = self._providers.get(key)
            if provider is None:
                logger.debug(f"Constructing {key} provider")
                provider = self._factories[key]()
                self._providers[key] = provider
            return provider

    # ------------------------------------------------------------------
    # Forwarding
    # ------------------------------------------------------------------

    def initialize_provider(
        self,
        provider: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> CloudProvider:
        cloud = self.get_provider(provider)
        cloud.initialize(region, cancel_token=cancel_token)
        return cloud

    def list_resources(
        self,
        provider: str,
        resource_type: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Resource]:
        return self.get_provider(provider).list_resources(
            resource_type, region, cancel_token=cancel_token
        )

    def list_all_resources(
        self,
        provider: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[ResourceListing]:
        """List every resource type; unsupported types become empty groups."""
        cloud = self.get_provider(provider)
        listings = []
        for resource_type in ResourceType.values():
            try:
                items = cloud.list_resources(resource_type, region, cancel_token=cancel_token)
            except UnsupportedResourceType as e:
                listings.append(ResourceListing(type=resource_type, error=str(e)))
                continue
            listings.append(ResourceListing(type=resource_type, items=tuple(items)))
        return listings

    def create_resource(
        self,
        provider: str,
        resource_type: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        cloud = self.get_provider(provider)
        return self._write(
            "create",
            resource_type,
            lambda: cloud.create_resource(resource_type, config, cancel_token=cancel_token),
            provider=cloud.name,
        )

    def delete_resource(
        self,
        provider: str,
        resource_type: str,
        resource_id: str,
        cancel_token: CancellationToken | None = None,
        **options: Any,
    ) -> OperationResult:
        cloud = self.get_provider(provider)
        return self._write(
            "delete",
            resource_type,
            lambda: cloud.delete_resource(
                resource_type, resource_id, cancel_token=cancel_token, **options
            ),
            provider=cloud.name,
        )

    def _write(
        self,
        operation: str,
        resource_type: str,
        call: Callable[[], OperationResult],
        provider: str,
    ) -> OperationResult:
        try:
            return call()
        except RigError as e:
            logger.error(f"Failed to {operation} resource: {LogSanitizer.sanitize(e)}")
            raise
        except NotImplementedError:
            raise
        except Exception as e:
            message = LogSanitizer.sanitize(e)
            logger.error(f"Failed to {operation} resource: {message}")
            raise ProviderError(
                f"Failed to {operation} {resource_type}: {message}",
                provider=provider,
                details=message,
            ) from e

    def get_metrics(
        self,
        provider: str,
        resource_type: str,
        resource_id: str,
        metrics: list[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> MetricsResult:
        return self.get_provider(provider).get_metrics(
            resource_type, resource_id, metrics, cancel_token=cancel_token
        )

    def get_logs(
        self,
        provider: str,
        resource_type: str,
        resource_name: str,
        hours: int = 1,
        cancel_token: CancellationToken | None = None,
    ) -> list[LogEntry]:
        return self.get_provider(provider).get_logs(
            resource_type, resource_name, hours, cancel_token=cancel_token
        )

    def estimate_cost(
        self, provider: str, resources: Iterable[Resource | Mapping[str, Any]]
    ) -> CostEstimate:
        return self.get_provider(provider).estimate_cost(resources)

    def validate_config(self, provider: str, config: Mapping[str, Any]) -> ValidationResult:
        return self.get_provider(provider).validate_config(config)


__all__ = ["CloudManager", "default_factories"]
