"""Cloud resource commands: list, create, delete, metrics and validate.

Create and delete are refused unless management mode is enabled with
--enable-management, RIG_MANAGEMENT_ENABLED or ``management_enabled`` in the
config file.
"""

import click
from rich.console import Console

from rig.cli_helpers import build_metrics_table, build_resource_table
from rig.click_group import ProviderGroup
from rig.commands._context import get_rig_context, handle_errors, parse_settings
from rig.exceptions import ValidationError
from rig.management import require_management_mode
from rig.models.resource_models import ResourceType

RESOURCE_TITLES = {
    "instances": "Instances",
    "storage": "Storage",
    "network": "Networks",
    "database": "Databases",
    "loadbalancer": "Load Balancers",
}


def _provider_name(ctx: click.Context) -> str:
    return ctx.parent.params["provider"].lower()


def register_cloud_commands(main: click.Group) -> None:
    """Register the cloud command group with the main CLI group."""

    @main.group(name="cloud", cls=ProviderGroup, invoke_without_command=True)
    @click.argument("provider")
    @click.option("--list", "list_", is_flag=True, help="List resources (default action)")
    @click.option(
        "--type",
        "resource_type",
        type=click.Choice(ResourceType.values()),
        default="instances",
        show_default=True,
        help="Resource type to list",
    )
    @click.option("--region", help="Region or zone", type=str)
    @click.option("--all", "list_all", is_flag=True, help="List every resource type")
    @click.option("--whoami", is_flag=True, help="Show the active cloud identity")
    @click.pass_context
    @handle_errors
    def cloud(
        ctx: click.Context,
        provider: str,
        list_: bool,
        resource_type: str,
        region: str | None,
        list_all: bool,
        whoami: bool,
    ) -> None:
        """Work with resources of one cloud PROVIDER (aws, gcp, azure).

        Without a subcommand, lists resources.

        \b
        Examples:
            rig cloud gcp
            rig cloud gcp --type storage
            rig cloud aws --all --region eu-west-1
            rig cloud aws --whoami
            rig --enable-management cloud gcp create instance --name web-1
            rig --enable-management cloud gcp delete instance web-1 --zone us-central1-a
        """
        rig_ctx = get_rig_context(ctx)
        cloud_provider = rig_ctx.cloud_manager.get_provider(provider)
        if ctx.invoked_subcommand is not None:
            return

        console = Console()
        name = provider.lower()

        if whoami:
            _show_identity(cloud_provider, rig_ctx.cancel_token)
            return

        if list_all:
            for listing in rig_ctx.cloud_manager.list_all_resources(
                name, region, cancel_token=rig_ctx.cancel_token
            ):
                title = f"{name.upper()} {RESOURCE_TITLES[listing.type]}"
                if listing.error:
                    click.secho(f"{title}: {listing.error}", fg="yellow")
                elif listing.items:
                    console.print(build_resource_table(list(listing.items), title))
                else:
                    click.echo(f"{title}: none found")
            return

        resources = rig_ctx.cloud_manager.list_resources(
            name, resource_type, region, cancel_token=rig_ctx.cancel_token
        )
        if not resources:
            click.echo(f"No {RESOURCE_TITLES[resource_type].lower()} found")
            return
        console.print(build_resource_table(resources, f"{name.upper()} {RESOURCE_TITLES[resource_type]}"))

    @cloud.command(name="create")
    @click.argument("resource_type")
    @click.option("--name", required=True, help="Resource name")
    @click.option("--region", help="Region, zone or bucket location", type=str)
    @click.option("--set", "settings", multiple=True, help="Extra setting as key=value")
    @click.pass_context
    @handle_errors
    def create(
        ctx: click.Context,
        resource_type: str,
        name: str,
        region: str | None,
        settings: tuple[str, ...],
    ) -> None:
        """Create a resource (instance, bucket, network)."""
        rig_ctx = get_rig_context(ctx)
        require_management_mode(rig_ctx.management_enabled, "create")
        provider = _provider_name(ctx)

        config = {"type": resource_type, "name": name, **parse_settings(settings)}
        if region:
            config["region"] = region
            if provider == "gcp" and resource_type == "instance" and region.count("-") >= 2:
                config.setdefault("zone", region)
        else:
            config.setdefault("region", rig_ctx.cloud_manager.get_provider(provider).config.region)
        config.setdefault("environment", rig_ctx.config.default_environment)

        validation = rig_ctx.cloud_manager.validate_config(provider, config)
        for warning in validation.warnings:
            click.secho(f"Warning: {warning}", fg="yellow", err=True)
        if not validation.valid:
            raise ValidationError(list(validation.errors))

        result = rig_ctx.cloud_manager.create_resource(
            provider, resource_type, config, cancel_token=rig_ctx.cancel_token
        )
        click.secho(
            f"{resource_type} {result.name or result.resource_id} ({result.resource_id}): "
            f"{result.status}",
            fg="green",
        )

    @cloud.command(name="delete")
    @click.argument("resource_type")
    @click.argument("resource_id")
    @click.option("--zone", help="Zone of the instance (GCP)", type=str)
    @click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
    @click.pass_context
    @handle_errors
    def delete(
        ctx: click.Context,
        resource_type: str,
        resource_id: str,
        zone: str | None,
        yes: bool,
    ) -> None:
        """Delete a resource (instance, bucket)."""
        rig_ctx = get_rig_context(ctx)
        require_management_mode(rig_ctx.management_enabled, "delete")
        provider = _provider_name(ctx)

        if not yes:
            click.confirm(
                f"Delete {resource_type} '{resource_id}' on {provider}? This cannot be undone.",
                abort=True,
            )

        options = {"zone": zone} if zone else {}
        result = rig_ctx.cloud_manager.delete_resource(
            provider, resource_type, resource_id, cancel_token=rig_ctx.cancel_token, **options
        )
        click.secho(f"{resource_type} {result.resource_id}: {result.status}", fg="green")

    @cloud.command(name="metrics")
    @click.argument("resource_type")
    @click.argument("resource_id")
    @click.option("--metric", "metric_names", multiple=True, help="Metric (cpu, memory, network, ...)")
    @click.pass_context
    @handle_errors
    def metrics(
        ctx: click.Context, resource_type: str, resource_id: str, metric_names: tuple[str, ...]
    ) -> None:
        """Show recent metrics for a resource."""
        rig_ctx = get_rig_context(ctx)
        result = rig_ctx.cloud_manager.get_metrics(
            _provider_name(ctx),
            resource_type,
            resource_id,
            list(metric_names) or None,
            cancel_token=rig_ctx.cancel_token,
        )
        if result.synthetic:
            click.secho(
                "Warning: metrics backend unavailable; values are placeholders",
                fg="yellow",
                err=True,
            )
        Console().print(build_metrics_table(result))

    @cloud.command(name="validate")
    @click.option("--type", "resource_type", default="instance", show_default=True)
    @click.option("--region", type=str, help="Region")
    @click.option("--project", type=str, help="Project (GCP)")
    @click.option("--set", "settings", multiple=True, help="Extra setting as key=value")
    @click.pass_context
    @handle_errors
    def validate(
        ctx: click.Context,
        resource_type: str,
        region: str | None,
        project: str | None,
        settings: tuple[str, ...],
    ) -> None:
        """Check a resource configuration without contacting the cloud."""
        rig_ctx = get_rig_context(ctx)
        config = {"type": resource_type, **parse_settings(settings)}
        if region:
            config["region"] = region
        if project:
            config["project"] = project

        result = rig_ctx.cloud_manager.validate_config(_provider_name(ctx), config)
        for error in result.errors:
            click.secho(f"Error: {error}", fg="red")
        for warning in result.warnings:
            click.secho(f"Warning: {warning}", fg="yellow")
        if not result.valid:
            ctx.exit(1)
        click.secho("Configuration is valid", fg="green")


def _show_identity(cloud_provider, cancel_token) -> None:
    current_identity = getattr(cloud_provider, "current_identity", None)
    if current_identity is None:
        cloud_provider.initialize(cancel_token=cancel_token)
        click.echo(f"Provider: {cloud_provider.name}")
        click.echo(f"Project:  {cloud_provider.config.project_id or '-'}")
        click.echo(f"Region:   {cloud_provider.config.region or '-'}")
        return

    identity = current_identity(cancel_token=cancel_token)
    if not identity:
        click.echo("Could not determine the active identity", err=True)
        raise SystemExit(1)
    for key, value in identity.items():
        click.echo(f"{key}: {value}")
