"""Cost estimate command for rig CLI.

Estimates are computed from built-in hourly rates; nothing is billed or
queried from a billing API.
"""

import click
from rich.console import Console

from rig.cli_helpers import build_cost_table
from rig.commands._context import get_rig_context, handle_errors


def register_cost_command(main: click.Group) -> None:
    """Register cost commands with main CLI group.

    Args:
        main: The main CLI group to register commands with
    """

    @main.group(name="cost")
    def cost_group() -> None:
        """Estimate monthly costs."""

    @cost_group.command(name="estimate")
    @click.argument("provider")
    @click.argument("resource_types", nargs=-1)
    @click.option(
        "--from-inventory",
        is_flag=True,
        help="Estimate the instances currently running in the account",
    )
    @click.option("--region", help="Region for --from-inventory", type=str)
    @click.pass_context
    @handle_errors
    def estimate(
        ctx: click.Context,
        provider: str,
        resource_types: tuple[str, ...],
        from_inventory: bool,
        region: str | None,
    ) -> None:
        """Estimate the monthly cost of RESOURCE_TYPES on PROVIDER.

        Each type is a machine type or service key (e2-micro, t2.micro,
        storage, s3.standard, ...). Unknown types use a flat fallback rate.

        \b
        Examples:
            rig cost estimate gcp e2-micro e2-medium
            rig cost estimate aws t2.micro t2.micro s3.standard
            rig cost estimate gcp --from-inventory
        """
        rig_ctx = get_rig_context(ctx)
        manager = rig_ctx.cloud_manager
        manager.get_provider(provider)

        if from_inventory:
            resources = manager.list_resources(
                provider, "instances", region, cancel_token=rig_ctx.cancel_token
            )
            if not resources:
                click.echo("No instances found to estimate")
                return
        elif resource_types:
            resources = [{"type": t, "name": t} for t in resource_types]
        else:
            raise click.UsageError("Give one or more resource types or --from-inventory")

        Console().print(build_cost_table(manager.estimate_cost(provider, resources)))
