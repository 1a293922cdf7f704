"""Custom Click group with automatic help display on errors.

This module provides a custom Click Group class that displays contextual help
when syntax errors occur and resolves short command aliases.
"""

import sys
from typing import Any

import click


class RigGroup(click.Group):
    """Click group that auto-displays help on usage errors and supports aliases."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        # alias -> command name
        self.aliases: dict[str, str] = {}

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        command = super().get_command(ctx, cmd_name)
        if command is None and cmd_name in self.aliases:
            command = super().get_command(ctx, self.aliases[cmd_name])
        return command

    def main(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().main(*args, **kwargs)
        except (
            click.exceptions.UsageError,
            click.exceptions.BadParameter,
            click.exceptions.MissingParameter,
        ) as e:
            click.echo(f"Error: {e.format_message()}", err=True)

            ctx = e.ctx if hasattr(e, "ctx") and e.ctx else None
            if ctx:
                click.echo("")
                click.echo(ctx.get_help())
                ctx.exit(e.exit_code)
                return None
            sys.exit(e.exit_code)
            return None

    def invoke(self, ctx: click.Context) -> Any:
        """Invoke the subcommand, showing its help on usage errors."""
        try:
            return super().invoke(ctx)
        except (
            click.exceptions.UsageError,
            click.exceptions.BadParameter,
            click.exceptions.MissingParameter,
        ) as e:
            click.echo(f"Error: {e.format_message()}", err=True)

            # Most specific context: the subcommand's when available
            error_ctx = e.ctx if hasattr(e, "ctx") and e.ctx else ctx
            click.echo("")
            click.echo(error_ctx.get_help())
            error_ctx.exit(e.exit_code)
            return None

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        """Show help when the command is not found."""
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            # Parameter errors are reported by invoke()
            if isinstance(e, click.exceptions.MissingParameter | click.exceptions.BadParameter):
                raise
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo("")
            click.echo(ctx.get_help())
            ctx.exit(e.exit_code)
            return None, None, []


class ProviderGroup(RigGroup):
    """Group with a leading argument whose own options may follow it.

    click stops reading group options at the first positional argument, so
    ``rig cloud gcp --type storage`` would take ``--type`` for a subcommand.
    The leading argument is moved behind the group options that precede the
    first subcommand name.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        split = next(
            (i for i, arg in enumerate(args) if i > 0 and arg in self.commands), len(args)
        )
        head, tail = args[:split], args[split:]
        if len(head) > 1 and not head[0].startswith("-"):
            args = head[1:] + head[:1] + tail
        return super().parse_args(ctx, args)


# Subgroups created with @main.group() also use RigGroup
RigGroup.group_class = RigGroup
