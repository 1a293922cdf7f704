"""Cloud provider implementations."""

from rig.providers.aws import AWSProvider
from rig.providers.azure import AzureProvider
from rig.providers.base import CloudProvider
from rig.providers.gcp import GCPProvider

__all__ = ["AWSProvider", "AzureProvider", "CloudProvider", "GCPProvider"]
