"""Two-tier Cloud Storage bucket listing.

Buckets are listed with gsutil first and with gcloud storage second. The two
tiers are different mechanisms with different output shapes (plain text vs
JSON), so each tier is its own parser rather than a retry of the same call.
When both tiers fail the listing degrades to an empty result.
"""

import json
import logging
import subprocess
from collections.abc import Callable

from rig.cancellation import CancellationToken
from rig.gcloud_executor import describe_failure, parse_json_output, run_gcloud_command
from rig.log_sanitizer import LogSanitizer
from rig.models.resource_models import Resource

logger = logging.getLogger(__name__)

CommandRunner = Callable[..., subprocess.CompletedProcess]

# Failures that make a tier fall through to the next one
LISTING_FAILURES = (
    subprocess.CalledProcessError,
    subprocess.TimeoutExpired,
    FileNotFoundError,
    json.JSONDecodeError,
)

BUCKET_TYPE = "Cloud Storage"


class GsutilBucketListing:
    """Primary tier: ``gsutil ls -p <project>`` (one ``gs://name/`` per line)."""

    label = "gsutil"

    def __init__(self, runner: CommandRunner = run_gcloud_command):
        self._runner = runner

    def command(self, project_id: str) -> list[str]:
        return ["gsutil", "ls", "-p", project_id]

    def list_buckets(
        self, project_id: str, cancel_token: CancellationToken | None = None
    ) -> list[Resource]:
        result = self._runner(self.command(project_id), cancel_token=cancel_token)
        return self.parse(result.stdout)

    @staticmethod
    def parse(stdout: str | None) -> list[Resource]:
        buckets = []
        for line in (stdout or "").splitlines():
            line = line.strip()
            if not line.startswith("gs://"):
                continue
            bucket_name = line[len("gs://") :].rstrip(":").strip("/")
            resource = Resource.build(
                id=bucket_name, name=bucket_name, type=BUCKET_TYPE, status="available"
            )
            if resource is not None:
                buckets.append(resource)
        return buckets


class GcloudStorageBucketListing:
    """Secondary tier: ``gcloud storage buckets list --format=json``."""

    label = "gcloud storage"

    def __init__(self, runner: CommandRunner = run_gcloud_command):
        self._runner = runner

    def command(self, project_id: str) -> list[str]:
        return [
            "gcloud",
            "storage",
            "buckets",
            "list",
            f"--project={project_id}",
            "--format=json",
        ]

    def list_buckets(
        self, project_id: str, cancel_token: CancellationToken | None = None
    ) -> list[Resource]:
        result = self._runner(self.command(project_id), cancel_token=cancel_token)
        return self.parse(result.stdout)

    @staticmethod
    def parse(stdout: str | None) -> list[Resource]:
        buckets = []
        for bucket in parse_json_output(stdout):
            resource = Resource.build(
                id=bucket.get("id") or bucket.get("name"),
                name=bucket.get("name"),
                type=BUCKET_TYPE,
                status="available",
                region=bucket.get("location"),
                created_at=bucket.get("creation_time") or bucket.get("timeCreated"),
                storage_class=bucket.get("default_storage_class")
                or bucket.get("storageClass"),
            )
            if resource is not None:
                buckets.append(resource)
        return buckets


class TwoTierBucketListing:
    """Try the primary listing, then the secondary, then give up with []."""

    def __init__(
        self,
        primary: GsutilBucketListing | None = None,
        secondary: GcloudStorageBucketListing | None = None,
        runner: CommandRunner = run_gcloud_command,
    ):
        self.primary = primary or GsutilBucketListing(runner)
        self.secondary = secondary or GcloudStorageBucketListing(runner)

    def list_buckets(
        self, project_id: str, cancel_token: CancellationToken | None = None
    ) -> list[Resource]:
        try:
            return self.primary.list_buckets(project_id, cancel_token=cancel_token)
        except LISTING_FAILURES as e:
            logger.debug(
                f"{self.primary.label} bucket listing failed, trying {self.secondary.label}: "
                f"{LogSanitizer.sanitize(describe_failure(e))}"
            )

        try:
            return self.secondary.list_buckets(project_id, cancel_token=cancel_token)
        except LISTING_FAILURES as e:
            logger.error(
                f"Failed to list GCP storage: {LogSanitizer.sanitize(describe_failure(e))}"
            )
            return []


__all__ = ["GcloudStorageBucketListing", "GsutilBucketListing", "TwoTierBucketListing"]
