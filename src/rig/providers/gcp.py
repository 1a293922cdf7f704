"""Google Cloud provider backed by the gcloud and gsutil CLIs.

Every backend call is a subprocess run through run_gcloud_command, which
means the provider relies on the ambient gcloud login (``gcloud auth login``)
instead of holding credentials itself.
"""

import json
import logging
import os
import subprocess
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from rig.cancellation import CancellationToken, check_cancelled
from rig.exceptions import AuthenticationError, ProviderError, UnsupportedResourceType
from rig.gcloud_executor import describe_failure, parse_json_output, run_gcloud_command
from rig.log_sanitizer import LogSanitizer
from rig.models.resource_models import (
    LogEntry,
    MetricsResult,
    OperationResult,
    ProviderConfig,
    Resource,
    ValidationResult,
    as_text,
    last_segment,
)
from rig.providers.base import CloudProvider
from rig.providers.gcp_storage import TwoTierBucketListing

logger = logging.getLogger(__name__)

CommandRunner = Callable[..., subprocess.CompletedProcess]

# Subprocess failures that a read swallows and a write converts to ProviderError
BACKEND_FAILURES = (
    subprocess.CalledProcessError,
    subprocess.TimeoutExpired,
    FileNotFoundError,
    json.JSONDecodeError,
)

DEFAULT_REGION = "us-central1"
DEFAULT_MACHINE_TYPE = "e2-micro"
DEFAULT_IMAGE_FAMILY = "debian-12"
DEFAULT_IMAGE_PROJECT = "debian-cloud"

# Creating a VM can take minutes; never retried
WRITE_TIMEOUT = 300

LOG_LIMIT = 100

# Short metric names accepted by get_metrics
METRIC_TYPES = {
    "cpu": "compute.googleapis.com/instance/cpu/utilization",
    "memory": "agent.googleapis.com/memory/percent_used",
    "network": "compute.googleapis.com/instance/network/received_bytes_count",
    "disk": "compute.googleapis.com/instance/disk/read_bytes_count",
}


def _option(config: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-empty value among keys (snake_case or camelCase)."""
    for key in keys:
        value = config.get(key)
        if value not in (None, ""):
            return value
    return default


def _is_zone(location: str) -> bool:
    # us-central1-a is a zone, us-central1 a region
    return location.count("-") >= 2


class GCPProvider(CloudProvider):
    """Google Cloud Platform provider.

    Args:
        project_id: GCP project (default: GCP_PROJECT_ID, GOOGLE_CLOUD_PROJECT,
            then the active gcloud configuration)
        region: Default region (default: GCP_REGION or us-central1)
        runner: Command runner, replaceable in tests
        bucket_listing: Storage listing strategy
    """

    name = "gcp"

    HOURLY_RATES = {
        "e2-micro": Decimal("0.0084"),
        "e2-small": Decimal("0.0168"),
        "e2-medium": Decimal("0.0336"),
        "n1-standard-1": Decimal("0.0475"),
        "storage": Decimal("0.020"),
    }

    def __init__(
        self,
        project_id: str | None = None,
        region: str | None = None,
        runner: CommandRunner = run_gcloud_command,
        bucket_listing: TwoTierBucketListing | None = None,
    ):
        self._runner = runner
        self.bucket_listing = bucket_listing or TwoTierBucketListing(runner=runner)
        self.config = ProviderConfig(
            credentials_source="gcloud",
            region=region or os.getenv("GCP_REGION") or DEFAULT_REGION,
            project_id=project_id
            or os.getenv("GCP_PROJECT_ID")
            or os.getenv("GOOGLE_CLOUD_PROJECT"),
        )

    @property
    def project_id(self) -> str | None:
        return self.config.project_id

    def _run(self, cmd: list[str], cancel_token: CancellationToken | None = None, **kwargs):
        return self._runner(cmd, cancel_token=cancel_token, **kwargs)

    def _run_write(self, cmd: list[str], cancel_token: CancellationToken | None = None):
        return self._runner(
            cmd, cancel_token=cancel_token, timeout=WRITE_TIMEOUT, max_attempts=1
        )

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def initialize(
        self, region: str | None = None, cancel_token: CancellationToken | None = None
    ) -> None:
        """Verify the gcloud login and resolve the project.

        Raises:
            AuthenticationError: No active gcloud account or gcloud missing
        """
        if self.config.initialized and (region is None or region == self.config.region):
            return

        check_cancelled(cancel_token)
        try:
            result = self._run(["gcloud", "auth", "list", "--format=json"], cancel_token)
            accounts = parse_json_output(result.stdout)
        except BACKEND_FAILURES as e:
            message = LogSanitizer.sanitize(describe_failure(e))
            logger.error(f"GCP initialization failed: {message}")
            raise AuthenticationError(
                f"Not authenticated with gcloud: {message}. Run: gcloud auth login"
            ) from e

        if not accounts:
            raise AuthenticationError("Not authenticated. Run: gcloud auth login")

        if not self.config.project_id:
            self.config.project_id = self._active_project(cancel_token)

        if region:
            self.config.region = region
        self.config.initialized = True
        logger.debug(f"GCP initialized (project={self.project_id}, region={self.config.region})")

    def _active_project(self, cancel_token: CancellationToken | None) -> str | None:
        try:
            result = self._run(["gcloud", "config", "get-value", "project"], cancel_token)
        except BACKEND_FAILURES as e:
            logger.debug(f"Could not read gcloud project: {describe_failure(e)}")
            return None
        project = (result.stdout or "").strip()
        return project or None

    def _require_project(self) -> str:
        if not self.project_id:
            raise ProviderError(
                "Project ID not configured. Set GCP_PROJECT_ID or run: "
                "gcloud config set project <id>",
                provider=self.name,
            )
        return self.project_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_resources(
        self,
        resource_type: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Resource]:
        listers = {
            "instances": lambda: self._list_instances(region, cancel_token),
            "storage": lambda: self.bucket_listing.list_buckets(
                self._require_project(), cancel_token=cancel_token
            ),
            "network": lambda: self._list_networks(cancel_token),
            "database": lambda: self._list_databases(cancel_token),
            "loadbalancer": lambda: self._list_load_balancers(cancel_token),
        }
        lister = listers.get(resource_type)
        if lister is None:
            logger.debug(f"GCP has no listing for resource type: {resource_type}")
            return []

        try:
            self.initialize(cancel_token=cancel_token)
            return lister()
        except (AuthenticationError, ProviderError) as e:
            logger.error(f"Failed to list GCP {resource_type}: {LogSanitizer.sanitize(e)}")
            return []
        except BACKEND_FAILURES as e:
            logger.error(
                f"Failed to list GCP {resource_type}: "
                f"{LogSanitizer.sanitize(describe_failure(e))}"
            )
            return []

    def _list_json(self, cmd: list[str], cancel_token: CancellationToken | None) -> list[dict]:
        project = self._require_project()
        result = self._run(cmd + [f"--project={project}", "--format=json"], cancel_token)
        return parse_json_output(result.stdout)

    def _list_instances(
        self, region: str | None, cancel_token: CancellationToken | None
    ) -> list[Resource]:
        cmd = ["gcloud", "compute", "instances", "list"]
        if region:
            cmd.append(f"--zones={region}" if _is_zone(region) else f"--filter=zone:{region}")

        instances = []
        for vm in self._list_json(cmd, cancel_token):
            interfaces = vm.get("networkInterfaces") or [{}]
            access_configs = interfaces[0].get("accessConfigs") or [{}]
            resource = Resource.build(
                id=vm.get("id"),
                name=vm.get("name"),
                type=last_segment(vm.get("machineType")),
                status=vm.get("status"),
                region=last_segment(vm.get("zone")),
                created_at=vm.get("creationTimestamp"),
                public_ip=access_configs[0].get("natIP"),
                private_ip=interfaces[0].get("networkIP"),
            )
            if resource is not None:
                instances.append(resource)
        return instances

    def _list_networks(self, cancel_token: CancellationToken | None) -> list[Resource]:
        networks = []
        for net in self._list_json(["gcloud", "compute", "networks", "list"], cancel_token):
            resource = Resource.build(
                id=net.get("id"),
                name=net.get("name"),
                type="VPC Network",
                status="available",
                created_at=net.get("creationTimestamp"),
                auto_create_subnetworks=net.get("autoCreateSubnetworks"),
            )
            if resource is not None:
                networks.append(resource)
        return networks

    def _list_databases(self, cancel_token: CancellationToken | None) -> list[Resource]:
        databases = []
        for db in self._list_json(["gcloud", "sql", "instances", "list"], cancel_token):
            resource = Resource.build(
                id=db.get("name"),
                name=db.get("name"),
                type=f"Cloud SQL {as_text(db.get('databaseVersion'))}".strip(),
                status=db.get("state"),
                region=db.get("region"),
                created_at=db.get("createTime"),
                tier=(db.get("settings") or {}).get("tier"),
            )
            if resource is not None:
                databases.append(resource)
        return databases

    def _list_load_balancers(self, cancel_token: CancellationToken | None) -> list[Resource]:
        rules = []
        for lb in self._list_json(["gcloud", "compute", "forwarding-rules", "list"], cancel_token):
            resource = Resource.build(
                id=lb.get("id"),
                name=lb.get("name"),
                type="Load Balancer",
                status="active",
                region=last_segment(lb.get("region")) or "global",
                created_at=lb.get("creationTimestamp"),
                ip_address=lb.get("IPAddress"),
            )
            if resource is not None:
                rules.append(resource)
        return rules

    def get_metrics(
        self,
        resource_type: str,
        resource_id: str,
        metrics: list[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> MetricsResult:
        """Latest values from Cloud Monitoring over the last hour.

        Falls back to a synthetic result when monitoring is unreachable or has
        no data for the resource.
        """
        names = metrics or ["cpu", "memory", "network"]
        end = datetime.now(timezone.utc)
        start = end - timedelta(hours=1)

        try:
            self.initialize(cancel_token=cancel_token)
            project = self._require_project()
            result = self._run(
                [
                    "gcloud",
                    "monitoring",
                    "time-series",
                    "list",
                    f"--project={project}",
                    f'--filter=resource.labels.instance_id="{resource_id}"',
                    f"--start-time={start.isoformat()}",
                    f"--end-time={end.isoformat()}",
                    "--format=json",
                ],
                cancel_token,
            )
            series = parse_json_output(result.stdout)
        except (AuthenticationError, ProviderError) as e:
            logger.warning(f"Could not fetch metrics: {LogSanitizer.sanitize(e)}")
            return MetricsResult.fallback(resource_id, names)
        except BACKEND_FAILURES as e:
            logger.warning(
                f"Could not fetch metrics: {LogSanitizer.sanitize(describe_failure(e))}"
            )
            return MetricsResult.fallback(resource_id, names)

        values = self._latest_values(series, names)
        if not values:
            logger.warning(f"No monitoring data for {resource_type} {resource_id}")
            return MetricsResult.fallback(resource_id, names, source="no-data")
        return MetricsResult(resource_id=resource_id, metrics=values, source="cloud-monitoring")

    @staticmethod
    def _latest_values(series: list[dict], names: list[str]) -> dict[str, float]:
        wanted = {METRIC_TYPES.get(name, name): name for name in names}
        values: dict[str, float] = {}
        for entry in series:
            metric_type = (entry.get("metric") or {}).get("type", "")
            name = wanted.get(metric_type)
            points = entry.get("points") or []
            if name is None or name in values or not points:
                continue
            value = points[0].get("value") or {}
            raw = value.get("doubleValue", value.get("int64Value"))
            if raw is not None:
                values[name] = float(raw)
        return values

    def get_logs(
        self,
        resource_type: str,
        resource_name: str,
        hours: int = 1,
        cancel_token: CancellationToken | None = None,
    ) -> list[LogEntry]:
        try:
            self.initialize(cancel_token=cancel_token)
            project = self._require_project()
            result = self._run(
                [
                    "gcloud",
                    "logging",
                    "read",
                    f"resource.type={resource_type} AND "
                    f"resource.labels.instance_id={resource_name}",
                    f"--project={project}",
                    f"--freshness={hours}h",
                    f"--limit={LOG_LIMIT}",
                    "--format=json",
                ],
                cancel_token,
            )
            records = parse_json_output(result.stdout)
        except (AuthenticationError, ProviderError) as e:
            logger.error(f"Failed to fetch logs: {LogSanitizer.sanitize(e)}")
            return []
        except BACKEND_FAILURES as e:
            logger.error(f"Failed to fetch logs: {LogSanitizer.sanitize(describe_failure(e))}")
            return []

        entries = []
        for record in records:
            payload = record.get("jsonPayload") or {}
            message = record.get("textPayload") or payload.get("message")
            if message is None:
                message = json.dumps(payload) if payload else ""
            entries.append(
                LogEntry(
                    timestamp=as_text(record.get("timestamp")),
                    severity=as_text(record.get("severity")) or "DEFAULT",
                    message=as_text(message),
                )
            )
        return entries

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_resource(
        self,
        resource_type: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        creators = {
            "instance": self._create_instance,
            "bucket": self._create_bucket,
            "network": self._create_network,
        }
        creator = creators.get(resource_type)
        if creator is None:
            raise UnsupportedResourceType(resource_type, "create", provider=self.name)

        name = _option(config, "name")
        if not name:
            raise ProviderError(f"A name is required to create a {resource_type}", self.name)

        self.initialize(cancel_token=cancel_token)
        project = self._require_project()
        try:
            return creator(project, str(name), config, cancel_token)
        except BACKEND_FAILURES as e:
            message = LogSanitizer.sanitize(describe_failure(e))
            logger.error(f"Failed to create {resource_type} {name}: {message}")
            raise ProviderError(
                f"Failed to create {resource_type} {name}: {message}",
                provider=self.name,
                details=message,
            ) from e

    def _resolve_zone(self, config: Mapping[str, Any]) -> str:
        """Zone for an instance: ``zone``, a zone-like region, else ``<region>-a``."""
        zone = _option(config, "zone")
        if zone:
            return str(zone)
        region = str(_option(config, "region", default=self.config.region))
        return region if _is_zone(region) else f"{region}-a"

    def _create_instance(
        self,
        project: str,
        name: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None,
    ) -> OperationResult:
        zone = self._resolve_zone(config)
        machine_type = _option(config, "machine_type", "machineType", default=DEFAULT_MACHINE_TYPE)
        image_family = _option(config, "image_family", "imageFamily", default=DEFAULT_IMAGE_FAMILY)
        image_project = _option(
            config, "image_project", "imageProject", default=DEFAULT_IMAGE_PROJECT
        )
        cmd = [
            "gcloud",
            "compute",
            "instances",
            "create",
            name,
            f"--project={project}",
            f"--zone={zone}",
            f"--machine-type={machine_type}",
            f"--image-family={image_family}",
            f"--image-project={image_project}",
            "--format=json",
        ]
        logger.info(f"Creating GCP instance {name} in {zone}")
        created = parse_json_output(self._run_write(cmd, cancel_token).stdout)
        instance = created[0] if isinstance(created, list) and created else {}
        return OperationResult(
            resource_id=as_text(instance.get("id")) or name,
            name=as_text(instance.get("name")) or name,
            status="creating",
            resource_type="instance",
        )

    def _create_bucket(
        self,
        project: str,
        name: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None,
    ) -> OperationResult:
        location = _option(config, "location", "region", default=self.config.region)
        logger.info(f"Creating GCP bucket gs://{name} in {location}")
        self._run_write(
            [
                "gcloud",
                "storage",
                "buckets",
                "create",
                f"gs://{name}",
                f"--project={project}",
                f"--location={location}",
                "--uniform-bucket-level-access",
            ],
            cancel_token,
        )
        return OperationResult(resource_id=name, name=name, status="created", resource_type="bucket")

    def _create_network(
        self,
        project: str,
        name: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None,
    ) -> OperationResult:
        subnet_mode = _option(config, "subnet_mode", "subnetMode", default="auto")
        logger.info(f"Creating GCP network {name} ({subnet_mode} subnets)")
        created = parse_json_output(
            self._run_write(
                [
                    "gcloud",
                    "compute",
                    "networks",
                    "create",
                    name,
                    f"--project={project}",
                    f"--subnet-mode={subnet_mode}",
                    "--format=json",
                ],
                cancel_token,
            ).stdout
        )
        network = created[0] if isinstance(created, list) and created else created or {}
        return OperationResult(
            resource_id=as_text(network.get("id")) or name,
            name=as_text(network.get("name")) or name,
            status="created",
            resource_type="network",
        )

    def delete_resource(
        self,
        resource_type: str,
        resource_id: str,
        cancel_token: CancellationToken | None = None,
        **options: Any,
    ) -> OperationResult:
        """Delete an instance (by name, optional ``zone`` or ``region``) or a bucket."""
        if resource_type not in ("instance", "bucket"):
            raise UnsupportedResourceType(resource_type, "delete", provider=self.name)

        self.initialize(cancel_token=cancel_token)
        project = self._require_project()
        if resource_type == "instance":
            zone = self._resolve_zone(options)
            cmd = [
                "gcloud",
                "compute",
                "instances",
                "delete",
                resource_id,
                f"--project={project}",
                f"--zone={zone}",
                "--quiet",
            ]
        else:
            cmd = ["gcloud", "storage", "rm", "-r", f"gs://{resource_id}", f"--project={project}"]

        logger.info(f"Deleting GCP {resource_type} {resource_id}")
        try:
            self._run_write(cmd, cancel_token)
        except BACKEND_FAILURES as e:
            message = LogSanitizer.sanitize(describe_failure(e))
            logger.error(f"Failed to delete {resource_type} {resource_id}: {message}")
            raise ProviderError(
                f"Failed to delete {resource_type} {resource_id}: {message}",
                provider=self.name,
                details=message,
            ) from e

        return OperationResult(
            resource_id=resource_id,
            name=resource_id,
            status="deleted",
            resource_type=resource_type,
        )

    # ------------------------------------------------------------------
    # Pure
    # ------------------------------------------------------------------

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        errors = []
        warnings = []

        if not (config.get("project") or self.project_id):
            errors.append("Project ID not configured. Set GCP_PROJECT_ID or pass a project")

        if not config.get("zone") and not config.get("region"):
            warnings.append("No zone or region specified, will use default")

        describes_instance = config.get("type") in (None, "", "instance")
        if describes_instance and not _option(config, "machine_type", "machineType"):
            warnings.append(f"No machine type specified, will use {DEFAULT_MACHINE_TYPE}")

        return ValidationResult.from_lists(errors, warnings)


__all__ = ["GCPProvider"]
