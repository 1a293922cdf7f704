"""Interactive session command for rig CLI."""

import click

from rig.commands._context import get_rig_context, handle_errors
from rig.interaction_handler import CLIInteractionHandler
from rig.interactive import InteractiveSession
from rig.models.session_models import SessionContext


def register_interactive_command(main: click.Group) -> None:
    """Register the interactive command (alias: i) with main CLI group."""

    @main.command(name="interactive")
    @click.pass_context
    @handle_errors
    def interactive(ctx: click.Context) -> None:
        """Start a guided, menu-driven session.

        The session always starts in read-only mode. Create and delete become
        available after confirming "Toggle management mode" in the main menu.
        """
        rig_ctx = get_rig_context(ctx)
        if rig_ctx.management_enabled:
            click.secho(
                "Note: interactive sessions start read-only; "
                "use 'Toggle management mode' to enable changes",
                fg="yellow",
                err=True,
            )

        session = InteractiveSession(
            rig_ctx.cloud_manager,
            CLIInteractionHandler(),
            ai_assistant=rig_ctx.assistant(),
            context=SessionContext(environment=rig_ctx.config.default_environment),
            cancel_token=rig_ctx.cancel_token,
        )
        session.run()
        click.echo("Goodbye")

    main.aliases["i"] = "interactive"
