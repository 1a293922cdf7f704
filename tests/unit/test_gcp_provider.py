"""Unit tests for the GCP provider.

All gcloud/gsutil calls go through GcloudRunnerFake; nothing is executed.
"""

import subprocess

import pytest

from rig.cancellation import CancellationToken
from rig.exceptions import (
    AuthenticationError,
    OperationCancelledError,
    ProviderError,
    UnsupportedResourceType,
)
from rig.providers.gcp import GCPProvider
from tests.mocks.subprocess_mock import GcloudRunnerFake

INSTANCES_JSON = [
    {
        "id": "4711",
        "name": "web-1",
        "machineType": "https://www.googleapis.com/compute/v1/projects/p/zones/us-central1-a/machineTypes/e2-micro",
        "status": "RUNNING",
        "zone": "https://www.googleapis.com/compute/v1/projects/p/zones/us-central1-a",
        "creationTimestamp": "2026-01-02T03:04:05.000-07:00",
        "networkInterfaces": [
            {"networkIP": "10.0.0.2", "accessConfigs": [{"natIP": "203.0.113.5"}]}
        ],
    },
    {"id": "4712", "name": "worker-1", "status": "TERMINATED", "networkInterfaces": []},
    {"status": "RUNNING"},
]


@pytest.fixture
def provider(gcloud):
    return GCPProvider(project_id="my-project", region="us-central1", runner=gcloud)


class TestInitialize:
    """Tests for gcloud login checks and project resolution."""

    def test_initialize_checks_login_once(self, provider, gcloud):
        provider.initialize()
        provider.initialize()
        assert len(gcloud.calls_matching("auth list")) == 1
        assert provider.config.initialized

    def test_no_accounts_raises_authentication_error(self):
        runner = GcloudRunnerFake().respond("auth list", [])
        provider = GCPProvider(project_id="p", runner=runner)
        with pytest.raises(AuthenticationError, match="gcloud auth login"):
            provider.initialize()

    def test_missing_gcloud_raises_authentication_error(self):
        runner = GcloudRunnerFake().raise_for("auth list", FileNotFoundError(2, "No such file", "gcloud"))
        provider = GCPProvider(project_id="p", runner=runner)
        with pytest.raises(AuthenticationError):
            provider.initialize()

    def test_project_from_active_configuration(self, gcloud):
        gcloud.respond("config get-value project", "proj-from-gcloud\n")
        provider = GCPProvider(runner=gcloud)
        provider.initialize()
        assert provider.project_id == "proj-from-gcloud"

    def test_project_from_environment(self, gcloud, monkeypatch):
        monkeypatch.setenv("GCP_PROJECT_ID", "env-project")
        provider = GCPProvider(runner=gcloud)
        assert provider.project_id == "env-project"

    def test_region_change_reinitializes(self, provider, gcloud):
        provider.initialize()
        provider.initialize("europe-west1")
        assert provider.config.region == "europe-west1"
        assert len(gcloud.calls_matching("auth list")) == 2

    def test_cancelled_token_stops_initialize(self, provider, gcloud):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            provider.initialize(cancel_token=token)
        assert gcloud.calls == []


class TestListResources:
    """Tests for read operations and their degradation."""

    def test_list_instances_normalizes_records(self, provider, gcloud):
        gcloud.respond("compute instances list", INSTANCES_JSON)

        instances = provider.list_resources("instances")

        assert [r.name for r in instances] == ["web-1", "worker-1"]
        web = instances[0]
        assert web.id == "4711"
        assert web.type == "e2-micro"
        assert web.status == "RUNNING"
        assert web.region == "us-central1-a"
        assert web.extra["public_ip"] == "203.0.113.5"
        assert web.extra["private_ip"] == "10.0.0.2"
        assert "public_ip" not in instances[1].extra
        gcloud.assert_called_with_command("--project=my-project")

    def test_zone_region_uses_zones_flag(self, provider, gcloud):
        provider.list_resources("instances", region="us-central1-a")
        gcloud.assert_called_with_command("--zones=us-central1-a")

    def test_region_uses_zone_filter(self, provider, gcloud):
        provider.list_resources("instances", region="europe-west1")
        gcloud.assert_called_with_command("--filter=zone:europe-west1")

    def test_backend_failure_returns_empty_list(self, provider, gcloud):
        gcloud.fail("compute instances list", stderr="ERROR: API not enabled")
        assert provider.list_resources("instances") == []

    def test_timeout_returns_empty_list(self, provider, gcloud):
        gcloud.raise_for("compute instances list", subprocess.TimeoutExpired("gcloud", 60))
        assert provider.list_resources("instances") == []

    def test_invalid_json_returns_empty_list(self, provider, gcloud):
        gcloud.respond("compute networks list", "not json")
        assert provider.list_resources("network") == []

    def test_unauthenticated_returns_empty_list(self):
        runner = GcloudRunnerFake().respond("auth list", [])
        provider = GCPProvider(project_id="p", runner=runner)
        assert provider.list_resources("instances") == []

    def test_unsupported_type_returns_empty_list_without_calls(self, provider, gcloud):
        assert provider.list_resources("queues") == []
        assert gcloud.calls == []

    def test_list_networks(self, provider, gcloud):
        gcloud.respond(
            "compute networks list",
            [{"id": "1", "name": "default", "autoCreateSubnetworks": True}],
        )
        (network,) = provider.list_resources("network")
        assert network.type == "VPC Network"
        assert network.extra["auto_create_subnetworks"] == "true"

    def test_list_databases(self, provider, gcloud):
        gcloud.respond(
            "sql instances list",
            [
                {
                    "name": "orders",
                    "databaseVersion": "POSTGRES_15",
                    "state": "RUNNABLE",
                    "region": "us-central1",
                    "settings": {"tier": "db-f1-micro"},
                }
            ],
        )
        (db,) = provider.list_resources("database")
        assert db.type == "Cloud SQL POSTGRES_15"
        assert db.extra["tier"] == "db-f1-micro"

    def test_list_load_balancers_defaults_to_global(self, provider, gcloud):
        gcloud.respond(
            "forwarding-rules list", [{"id": "9", "name": "lb", "IPAddress": "198.51.100.1"}]
        )
        (lb,) = provider.list_resources("loadbalancer")
        assert lb.region == "global"
        assert lb.status == "active"
        assert lb.extra["ip_address"] == "198.51.100.1"

    def test_list_storage_uses_gsutil_first(self, provider, gcloud):
        gcloud.respond("gsutil ls", "gs://alpha/\ngs://beta/\n")
        buckets = provider.list_resources("storage")
        assert [b.name for b in buckets] == ["alpha", "beta"]
        gcloud.assert_not_called_with_command("storage buckets list")

    def test_missing_project_returns_empty_list(self, gcloud):
        provider = GCPProvider(runner=gcloud)
        assert provider.list_resources("instances") == []
        gcloud.assert_not_called_with_command("compute instances list")


class TestMetricsAndLogs:
    """Tests for Cloud Monitoring and Cloud Logging reads."""

    def test_metrics_from_monitoring(self, provider, gcloud):
        gcloud.respond(
            "time-series list",
            [
                {
                    "metric": {"type": "compute.googleapis.com/instance/cpu/utilization"},
                    "points": [{"value": {"doubleValue": 0.42}}, {"value": {"doubleValue": 0.1}}],
                }
            ],
        )
        result = provider.get_metrics("instances", "4711", ["cpu"])
        assert result.metrics == {"cpu": 0.42}
        assert not result.synthetic
        assert result.source == "cloud-monitoring"

    def test_metrics_fallback_on_failure(self, provider, gcloud):
        gcloud.fail("time-series list")
        result = provider.get_metrics("instances", "4711")
        assert result.synthetic
        assert result.source == "fallback"
        assert set(result.metrics) == {"cpu", "memory", "network"}

    def test_metrics_without_data(self, provider, gcloud):
        gcloud.respond("time-series list", [])
        result = provider.get_metrics("instances", "4711", ["cpu"])
        assert result.synthetic
        assert result.source == "no-data"

    def test_logs(self, provider, gcloud):
        gcloud.respond(
            "logging read",
            [
                {"timestamp": "2026-01-01T00:00:00Z", "severity": "ERROR", "textPayload": "boom"},
                {"timestamp": "2026-01-01T00:00:01Z", "jsonPayload": {"message": "hello"}},
            ],
        )
        entries = provider.get_logs("gce_instance", "4711", hours=6)
        assert [e.message for e in entries] == ["boom", "hello"]
        assert entries[1].severity == "DEFAULT"
        gcloud.assert_called_with_command("--freshness=6h")

    def test_logs_failure_returns_empty_list(self, provider, gcloud):
        gcloud.fail("logging read")
        assert provider.get_logs("gce_instance", "4711") == []


class TestWrites:
    """Tests for create and delete, which raise instead of degrading."""

    def test_create_instance_defaults(self, provider, gcloud):
        gcloud.respond("instances create", [{"id": "999", "name": "web-2"}])

        result = provider.create_resource("instance", {"name": "web-2"})

        assert result.resource_id == "999"
        assert result.status == "creating"
        (call,) = gcloud.calls_matching("instances create")
        assert "--zone=us-central1-a" in call["cmd"]
        assert "--machine-type=e2-micro" in call["cmd"]
        assert "--image-family=debian-12" in call["cmd"]
        assert call["kwargs"]["max_attempts"] == 1

    def test_create_instance_accepts_camel_case_options(self, provider, gcloud):
        provider.create_resource(
            "instance", {"name": "big", "machineType": "n1-standard-1", "zone": "us-east1-b"}
        )
        (call,) = gcloud.calls_matching("instances create")
        assert "--machine-type=n1-standard-1" in call["cmd"]
        assert "--zone=us-east1-b" in call["cmd"]

    def test_create_instance_in_requested_region(self, provider, gcloud):
        provider.create_resource("instance", {"name": "w", "region": "europe-west1"})
        (call,) = gcloud.calls_matching("instances create")
        assert "--zone=europe-west1-a" in call["cmd"]

    def test_zone_like_region_is_used_as_zone(self, provider, gcloud):
        provider.initialize("us-east1-b")

        provider.create_resource("instance", {"name": "w"})
        provider.delete_resource("instance", "w")

        (create,) = gcloud.calls_matching("instances create")
        (delete,) = gcloud.calls_matching("instances delete")
        assert "--zone=us-east1-b" in create["cmd"]
        assert "--zone=us-east1-b" in delete["cmd"]

    def test_create_bucket(self, provider, gcloud):
        result = provider.create_resource("bucket", {"name": "logs", "location": "EU"})
        assert result.status == "created"
        gcloud.assert_called_with_command("gcloud storage buckets create gs://logs")
        gcloud.assert_called_with_command("--location=EU")

    def test_create_network(self, provider, gcloud):
        gcloud.respond("networks create", [{"id": "77", "name": "vpc-a"}])
        result = provider.create_resource("network", {"name": "vpc-a"})
        assert result.resource_id == "77"
        gcloud.assert_called_with_command("--subnet-mode=auto")

    def test_create_failure_raises_provider_error(self, provider, gcloud):
        gcloud.fail("instances create", stderr="ERROR: Quota exceeded")
        with pytest.raises(ProviderError, match="Quota exceeded") as exc_info:
            provider.create_resource("instance", {"name": "web-3"})
        assert exc_info.value.provider == "gcp"

    def test_create_unsupported_type(self, provider, gcloud):
        with pytest.raises(UnsupportedResourceType):
            provider.create_resource("database", {"name": "db"})
        assert gcloud.calls == []

    def test_create_requires_name(self, provider):
        with pytest.raises(ProviderError, match="name is required"):
            provider.create_resource("instance", {})

    def test_create_unauthenticated_raises(self):
        runner = GcloudRunnerFake().respond("auth list", [])
        provider = GCPProvider(project_id="p", runner=runner)
        with pytest.raises(AuthenticationError):
            provider.create_resource("instance", {"name": "x"})

    def test_delete_instance_in_zone(self, provider, gcloud):
        result = provider.delete_resource("instance", "web-1", zone="us-central1-b")
        assert result.status == "deleted"
        (call,) = gcloud.calls_matching("instances delete")
        assert call["cmd"][:5] == ["gcloud", "compute", "instances", "delete", "web-1"]
        assert "--zone=us-central1-b" in call["cmd"]
        assert "--quiet" in call["cmd"]

    def test_delete_bucket(self, provider, gcloud):
        provider.delete_resource("bucket", "logs")
        gcloud.assert_called_with_command("gcloud storage rm -r gs://logs --project=my-project")

    def test_delete_failure_raises_provider_error(self, provider, gcloud):
        gcloud.fail("instances delete", stderr="ERROR: not found")
        with pytest.raises(ProviderError, match="not found"):
            provider.delete_resource("instance", "ghost")

    def test_delete_unsupported_type(self, provider, gcloud):
        with pytest.raises(UnsupportedResourceType):
            provider.delete_resource("network", "vpc-a")
        assert gcloud.calls == []


class TestPureOperations:
    """Tests for validate_config and estimate_cost (no subprocess calls)."""

    def test_validate_empty_config_without_project(self, gcloud):
        result = GCPProvider(runner=gcloud).validate_config({})
        assert not result.valid
        assert any("Project ID" in error for error in result.errors)
        assert gcloud.calls == []

    def test_validate_region_with_project(self, provider):
        result = provider.validate_config({"region": "us-central1"})
        assert result.valid
        assert "No machine type specified, will use e2-micro" in result.warnings
        assert not any("zone or region" in w for w in result.warnings)

    def test_validate_project_in_config(self, gcloud):
        result = GCPProvider(runner=gcloud).validate_config(
            {"project": "p", "zone": "us-central1-a", "machine_type": "e2-small"}
        )
        assert result.valid
        assert result.warnings == ()

    def test_validate_bucket_has_no_machine_type_warning(self, provider):
        result = provider.validate_config({"type": "bucket", "region": "US"})
        assert result.warnings == ()

    def test_estimate_cost_e2_micro(self, provider):
        estimate = provider.estimate_cost([{"type": "e2-micro"}])
        assert estimate.monthly_cost == "6.13"
        assert estimate.currency == "USD"
        assert estimate.breakdown[0].estimated_cost == "6.13"

    def test_estimate_cost_unknown_type_uses_fallback_rate(self, provider):
        assert provider.estimate_cost([{"type": "a2-ultragpu-8g"}]).monthly_cost == "7.30"

    def test_estimate_cost_sums_before_rounding(self, provider):
        estimate = provider.estimate_cost([{"type": "e2-micro"}, {"type": "e2-micro"}])
        # 2 * 0.0084 * 730 = 12.264
        assert estimate.monthly_cost == "12.26"

    def test_estimate_cost_empty(self, provider):
        estimate = provider.estimate_cost([])
        assert estimate.monthly_cost == "0.00"
        assert estimate.breakdown == ()
