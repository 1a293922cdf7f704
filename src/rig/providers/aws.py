"""Amazon Web Services provider backed by boto3.

Credentials come from the environment (AWS_ACCESS_KEY_ID,
AWS_SECRET_ACCESS_KEY and an optional AWS_SESSION_TOKEN). Clients are created
lazily per service and rebuilt when the region changes.
"""

import logging
import os
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from rig.cancellation import CancellationToken, check_cancelled
from rig.exceptions import AuthenticationError, ProviderError, UnsupportedResourceType
from rig.log_sanitizer import LogSanitizer
from rig.models.resource_models import (
    MetricsResult,
    OperationResult,
    ProviderConfig,
    Resource,
    ValidationResult,
    as_text,
)
from rig.providers.base import CloudProvider

logger = logging.getLogger(__name__)

AWS_FAILURES = (ClientError, BotoCoreError)

DEFAULT_REGION = "us-east-1"
DEFAULT_INSTANCE_TYPE = "t2.micro"
DEFAULT_INSTANCE_NAME = "rig-instance"

# Public SSM parameter that always points at the current Amazon Linux AMI
LATEST_AMI_PARAMETER = "/aws/service/ami-amazon-linux-latest/al2023-ami-kernel-default-x86_64"

METRICS_PERIOD_SECONDS = 300

# (namespace, metric name, statistic) per resource type and short metric name
CLOUDWATCH_METRICS: dict[str, dict[str, tuple[str, str, str]]] = {
    "instance": {
        "cpu": ("AWS/EC2", "CPUUtilization", "Average"),
        "memory": ("CWAgent", "mem_used_percent", "Average"),
        "network": ("AWS/EC2", "NetworkIn", "Sum"),
        "disk": ("AWS/EC2", "DiskReadBytes", "Sum"),
    },
    "database": {
        "cpu": ("AWS/RDS", "CPUUtilization", "Average"),
        "memory": ("AWS/RDS", "FreeableMemory", "Average"),
        "network": ("AWS/RDS", "NetworkReceiveThroughput", "Average"),
        "connections": ("AWS/RDS", "DatabaseConnections", "Average"),
    },
}

METRIC_DIMENSIONS = {"instance": "InstanceId", "database": "DBInstanceIdentifier"}

# Accept the listing names as well as the singular create/delete names
METRIC_RESOURCE_ALIASES = {"instances": "instance", "database": "database", "db": "database"}


def _timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return as_text(value)


def _tag(tags: list[dict] | None, key: str) -> str | None:
    for tag in tags or []:
        if tag.get("Key") == key:
            return tag.get("Value")
    return None


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        info = error.response.get("Error", {})
        code = info.get("Code", "")
        message = info.get("Message", "") or str(error)
        return LogSanitizer.sanitize(f"{code}: {message}" if code else message)
    return LogSanitizer.sanitize(str(error))


class AWSProvider(CloudProvider):
    """AWS provider.

    Args:
        region: Default region (default: AWS_REGION, AWS_DEFAULT_REGION or us-east-1)
        session_factory: Builds a boto3 session from keyword credentials;
            replaceable in tests
    """

    name = "aws"

    HOURLY_RATES = {
        "t2.micro": Decimal("0.0116"),
        "t2.small": Decimal("0.023"),
        "t2.medium": Decimal("0.0464"),
        "s3.standard": Decimal("0.023"),
    }

    def __init__(
        self,
        region: str | None = None,
        session_factory: Callable[..., Any] = boto3.Session,
    ):
        self._session_factory = session_factory
        self._session: Any = None
        self._clients: dict[str, Any] = {}
        self.config = ProviderConfig(
            credentials_source="environment",
            region=region
            or os.getenv("AWS_REGION")
            or os.getenv("AWS_DEFAULT_REGION")
            or DEFAULT_REGION,
        )

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def initialize(
        self, region: str | None = None, cancel_token: CancellationToken | None = None
    ) -> None:
        """Build a boto3 session from environment credentials.

        Raises:
            AuthenticationError: AWS_ACCESS_KEY_ID or AWS_SECRET_ACCESS_KEY missing
        """
        if self.config.initialized and (region is None or region == self.config.region):
            return

        check_cancelled(cancel_token)
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        if not access_key or not secret_key:
            raise AuthenticationError(
                "AWS credentials not found. Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY"
            )

        target_region = region or self.config.region
        self._session = self._session_factory(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            aws_session_token=os.getenv("AWS_SESSION_TOKEN") or None,
            region_name=target_region,
        )
        self._clients = {}
        self.config.region = target_region
        self.config.initialized = True
        logger.debug(f"AWS initialized (region={target_region})")

    def _client(self, service: str) -> Any:
        if service not in self._clients:
            self._clients[service] = self._session.client(
                service, region_name=self.config.region
            )
        return self._clients[service]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_resources(
        self,
        resource_type: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Resource]:
        """List resources of one type.

        Raises:
            UnsupportedResourceType: For loadbalancer and any unknown type
        """
        listers = {
            "instances": self._list_instances,
            "storage": self._list_buckets,
            "network": self._list_vpcs,
            "database": self._list_databases,
        }
        lister = listers.get(resource_type)
        if lister is None:
            raise UnsupportedResourceType(resource_type, "list", provider=self.name)

        try:
            self.initialize(region, cancel_token=cancel_token)
            check_cancelled(cancel_token)
            return lister(cancel_token)
        except AuthenticationError as e:
            logger.error(f"Failed to list AWS {resource_type}: {LogSanitizer.sanitize(e)}")
            return []
        except AWS_FAILURES as e:
            logger.error(f"Failed to list AWS {resource_type}: {_error_message(e)}")
            return []

    def _list_instances(self, cancel_token: CancellationToken | None) -> list[Resource]:
        instances = []
        paginator = self._client("ec2").get_paginator("describe_instances")
        for page in paginator.paginate():
            check_cancelled(cancel_token)
            for reservation in page.get("Reservations", []):
                for instance in reservation.get("Instances", []):
                    resource = Resource.build(
                        id=instance.get("InstanceId"),
                        name=_tag(instance.get("Tags"), "Name"),
                        type=instance.get("InstanceType"),
                        status=(instance.get("State") or {}).get("Name"),
                        region=(instance.get("Placement") or {}).get("AvailabilityZone"),
                        created_at=_timestamp(instance.get("LaunchTime")),
                        public_ip=instance.get("PublicIpAddress"),
                        private_ip=instance.get("PrivateIpAddress"),
                    )
                    if resource is not None:
                        instances.append(resource)
        return instances

    def _list_buckets(self, cancel_token: CancellationToken | None) -> list[Resource]:
        response = self._client("s3").list_buckets()
        buckets = []
        for bucket in response.get("Buckets", []):
            resource = Resource.build(
                id=bucket.get("Name"),
                name=bucket.get("Name"),
                type="S3 Bucket",
                status="available",
                region=bucket.get("BucketRegion"),
                created_at=_timestamp(bucket.get("CreationDate")),
            )
            if resource is not None:
                buckets.append(resource)
        return buckets

    def _list_vpcs(self, cancel_token: CancellationToken | None) -> list[Resource]:
        response = self._client("ec2").describe_vpcs()
        vpcs = []
        for vpc in response.get("Vpcs", []):
            resource = Resource.build(
                id=vpc.get("VpcId"),
                name=_tag(vpc.get("Tags"), "Name"),
                type="VPC",
                status=vpc.get("State"),
                region=self.config.region,
                cidr_block=vpc.get("CidrBlock"),
                is_default=vpc.get("IsDefault"),
            )
            if resource is not None:
                vpcs.append(resource)
        return vpcs

    def _list_databases(self, cancel_token: CancellationToken | None) -> list[Resource]:
        databases = []
        paginator = self._client("rds").get_paginator("describe_db_instances")
        for page in paginator.paginate():
            check_cancelled(cancel_token)
            for db in page.get("DBInstances", []):
                resource = Resource.build(
                    id=db.get("DBInstanceIdentifier"),
                    name=db.get("DBName") or db.get("DBInstanceIdentifier"),
                    type=f"RDS {as_text(db.get('Engine'))}".strip(),
                    status=db.get("DBInstanceStatus"),
                    region=db.get("AvailabilityZone"),
                    created_at=_timestamp(db.get("InstanceCreateTime")),
                    instance_class=db.get("DBInstanceClass"),
                    endpoint=(db.get("Endpoint") or {}).get("Address"),
                )
                if resource is not None:
                    databases.append(resource)
        return databases

    def get_metrics(
        self,
        resource_type: str,
        resource_id: str,
        metrics: list[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> MetricsResult:
        """Latest CloudWatch datapoints over the last hour.

        Falls back to a synthetic result for resource types without CloudWatch
        mappings and whenever CloudWatch cannot be reached.
        """
        names = metrics or ["cpu", "memory", "network"]
        kind = METRIC_RESOURCE_ALIASES.get(resource_type, resource_type)
        definitions = CLOUDWATCH_METRICS.get(kind)
        if definitions is None:
            logger.warning(f"No CloudWatch metrics defined for {resource_type}")
            return MetricsResult.fallback(resource_id, names)

        end = datetime.now(timezone.utc)
        start = end - timedelta(hours=1)
        values: dict[str, float] = {}
        try:
            self.initialize(cancel_token=cancel_token)
            cloudwatch = self._client("cloudwatch")
            for name in names:
                if name not in definitions:
                    continue
                check_cancelled(cancel_token)
                namespace, metric_name, statistic = definitions[name]
                response = cloudwatch.get_metric_statistics(
                    Namespace=namespace,
                    MetricName=metric_name,
                    Dimensions=[{"Name": METRIC_DIMENSIONS[kind], "Value": resource_id}],
                    StartTime=start,
                    EndTime=end,
                    Period=METRICS_PERIOD_SECONDS,
                    Statistics=[statistic],
                )
                datapoints = sorted(
                    response.get("Datapoints", []), key=lambda point: point["Timestamp"]
                )
                if datapoints:
                    values[name] = float(datapoints[-1][statistic])
        except AuthenticationError as e:
            logger.warning(f"Could not fetch metrics: {LogSanitizer.sanitize(e)}")
            return MetricsResult.fallback(resource_id, names)
        except AWS_FAILURES as e:
            logger.warning(f"Could not fetch metrics: {_error_message(e)}")
            return MetricsResult.fallback(resource_id, names)

        if not values:
            logger.warning(f"No CloudWatch data for {resource_type} {resource_id}")
            return MetricsResult.fallback(resource_id, names, source="no-data")
        return MetricsResult(resource_id=resource_id, metrics=values, source="cloudwatch")

    def current_identity(self, cancel_token: CancellationToken | None = None) -> dict[str, str]:
        """Account, ARN and IAM user name of the active credentials.

        Returns an empty dict when the identity cannot be determined.
        """
        try:
            self.initialize(cancel_token=cancel_token)
            caller = self._client("sts").get_caller_identity()
        except AuthenticationError as e:
            logger.error(f"Could not determine AWS identity: {LogSanitizer.sanitize(e)}")
            return {}
        except AWS_FAILURES as e:
            logger.error(f"Could not determine AWS identity: {_error_message(e)}")
            return {}

        identity = {
            "account": as_text(caller.get("Account")),
            "arn": as_text(caller.get("Arn")),
            "user_id": as_text(caller.get("UserId")),
        }
        self.config.project_id = identity["account"] or None

        # Assumed roles have no IAM user
        if ":user/" in identity["arn"]:
            try:
                user = self._client("iam").get_user().get("User", {})
                identity["user_name"] = as_text(user.get("UserName"))
            except AWS_FAILURES as e:
                logger.debug(f"Could not read IAM user: {_error_message(e)}")
        return identity

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_resource(
        self,
        resource_type: str,
        config: Mapping[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        if resource_type not in ("instance", "bucket"):
            raise UnsupportedResourceType(resource_type, "create", provider=self.name)
        if resource_type == "bucket" and not config.get("name"):
            raise ProviderError("A name is required to create a bucket", provider=self.name)

        self.initialize(config.get("region") or None, cancel_token=cancel_token)
        check_cancelled(cancel_token)
        try:
            if resource_type == "instance":
                return self._create_instance(config, cancel_token)
            return self._create_bucket(config)
        except AWS_FAILURES as e:
            message = _error_message(e)
            logger.error(f"Failed to create {resource_type}: {message}")
            raise ProviderError(
                f"Failed to create {resource_type}: {message}",
                provider=self.name,
                details=message,
            ) from e

    def _create_instance(
        self, config: Mapping[str, Any], cancel_token: CancellationToken | None
    ) -> OperationResult:
        name = config.get("name") or DEFAULT_INSTANCE_NAME
        image_id = config.get("image_id") or config.get("imageId")
        if not image_id:
            parameter = self._client("ssm").get_parameter(Name=LATEST_AMI_PARAMETER)
            image_id = parameter["Parameter"]["Value"]
            check_cancelled(cancel_token)

        params: dict[str, Any] = {
            "ImageId": image_id,
            "InstanceType": config.get("instance_type")
            or config.get("instanceType")
            or DEFAULT_INSTANCE_TYPE,
            "MinCount": 1,
            "MaxCount": 1,
            "TagSpecifications": [
                {
                    "ResourceType": "instance",
                    "Tags": [
                        {"Key": "Name", "Value": name},
                        {"Key": "Environment", "Value": config.get("environment") or "dev"},
                    ],
                }
            ],
        }
        if config.get("key_name"):
            params["KeyName"] = config["key_name"]
        if config.get("subnet_id"):
            params["SubnetId"] = config["subnet_id"]
        if config.get("security_groups"):
            groups = config["security_groups"]
            params["SecurityGroupIds"] = groups.split(",") if isinstance(groups, str) else groups

        logger.info(f"Launching EC2 instance {name} ({params['InstanceType']})")
        response = self._client("ec2").run_instances(**params)
        instance_id = response["Instances"][0]["InstanceId"]
        return OperationResult(
            resource_id=instance_id, name=name, status="launching", resource_type="instance"
        )

    def _create_bucket(self, config: Mapping[str, Any]) -> OperationResult:
        name = config["name"]
        params: dict[str, Any] = {"Bucket": name}
        if self.config.region != DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.config.region}

        logger.info(f"Creating S3 bucket {name} in {self.config.region}")
        self._client("s3").create_bucket(**params)
        return OperationResult(resource_id=name, name=name, status="created", resource_type="bucket")

    def delete_resource(
        self,
        resource_type: str,
        resource_id: str,
        cancel_token: CancellationToken | None = None,
        **options: Any,
    ) -> OperationResult:
        if resource_type not in ("instance", "bucket"):
            raise UnsupportedResourceType(resource_type, "delete", provider=self.name)

        self.initialize(options.get("region") or None, cancel_token=cancel_token)
        check_cancelled(cancel_token)
        logger.info(f"Deleting AWS {resource_type} {resource_id}")
        try:
            if resource_type == "instance":
                self._client("ec2").terminate_instances(InstanceIds=[resource_id])
                status = "terminating"
            else:
                self._client("s3").delete_bucket(Bucket=resource_id)
                status = "deleted"
        except AWS_FAILURES as e:
            message = _error_message(e)
            logger.error(f"Failed to delete {resource_type} {resource_id}: {message}")
            raise ProviderError(
                f"Failed to delete {resource_type} {resource_id}: {message}",
                provider=self.name,
                details=message,
            ) from e

        return OperationResult(
            resource_id=resource_id, name=resource_id, status=status, resource_type=resource_type
        )

    # ------------------------------------------------------------------
    # Pure
    # ------------------------------------------------------------------

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        errors = []
        warnings = []

        if not config.get("region"):
            errors.append("Region is required")

        describes_instance = config.get("type") in (None, "", "instance")
        if describes_instance and not (config.get("instance_type") or config.get("instanceType")):
            warnings.append(f"Instance type not specified, will use {DEFAULT_INSTANCE_TYPE}")

        return ValidationResult.from_lists(errors, warnings)


__all__ = ["AWSProvider"]
