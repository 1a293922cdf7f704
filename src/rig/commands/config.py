"""Config commands for rig CLI.

This module provides commands to show and change the configuration file.
"""

import click
from rich.console import Console
from rich.table import Table

from rig.commands._context import get_rig_context, handle_errors
from rig.config_manager import ConfigManager, RigConfig


def register_config_commands(main: click.Group) -> None:
    """Register config commands with main CLI group."""

    @main.group(name="config")
    def config_group() -> None:
        """Show or change rig configuration (~/.rig/config.toml)."""

    @config_group.command(name="show")
    @click.pass_context
    @handle_errors
    def show(ctx: click.Context) -> None:
        """Show the effective configuration."""
        rig_ctx = get_rig_context(ctx)
        path = ConfigManager.get_config_path(rig_ctx.config_path)

        table = Table(title=f"Configuration ({path})", show_header=True, header_style="bold")
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        values = rig_ctx.config.to_dict()
        for key in RigConfig.keys():
            value = values.get(key)
            table.add_row(key, "-" if value is None else str(value))
        Console().print(table)

    @config_group.command(name="set")
    @click.argument("key")
    @click.argument("value")
    @click.pass_context
    @handle_errors
    def set_value(ctx: click.Context, key: str, value: str) -> None:
        """Set KEY to VALUE in the configuration file.

        \b
        Examples:
            rig config set default_provider aws
            rig config set gcp_project my-project
            rig config set management_enabled false
        """
        rig_ctx = get_rig_context(ctx)
        rig_ctx.config = ConfigManager.set_value(key, value, rig_ctx.config_path)
        path = ConfigManager.get_config_path(rig_ctx.config_path)
        click.echo(f"Set {key} = {getattr(rig_ctx.config, key)} in {path}")
