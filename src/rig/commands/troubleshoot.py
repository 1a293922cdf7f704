"""Troubleshoot command: AI-assisted advice for an infrastructure issue."""

import logging

import click
from rich.console import Console

from rig.cli_helpers import build_log_table
from rig.commands._context import get_rig_context, handle_errors
from rig.config_manager import ENVIRONMENTS

logger = logging.getLogger(__name__)


def register_troubleshoot_command(main: click.Group) -> None:
    """Register troubleshoot command with main CLI group."""

    @main.command(name="troubleshoot")
    @click.option("--issue", help="Description of the problem", type=str)
    @click.option("--provider", help="Cloud provider the issue is on", type=str)
    @click.option("--environment", type=click.Choice(ENVIRONMENTS), help="Environment")
    @click.option("--logs", "log_resource", help="Show recent logs for this resource", type=str)
    @click.option("--hours", default=1, show_default=True, help="Log window in hours", type=int)
    @click.pass_context
    @handle_errors
    def troubleshoot(
        ctx: click.Context,
        issue: str | None,
        provider: str | None,
        environment: str | None,
        log_resource: str | None,
        hours: int,
    ) -> None:
        """Get troubleshooting advice for an issue.

        Uses the AI backend from RIG_AI_PROVIDER (anthropic, openai, ollama)
        and falls back to built-in recommendations when it is unavailable.

        \b
        Examples:
            rig troubleshoot --issue "connection timeout to database"
            rig troubleshoot --provider gcp --logs web-1 --hours 6
        """
        rig_ctx = get_rig_context(ctx)
        if not issue:
            issue = click.prompt("Describe the issue", type=str)

        provider = provider.lower() if provider else None
        if provider:
            rig_ctx.cloud_manager.get_provider(provider)

        assistant = rig_ctx.assistant()
        category = assistant.categorize_issue(issue)
        context = {
            "provider": provider,
            "environment": environment or rig_ctx.config.default_environment,
            "category": category,
        }
        logger.debug(f"Troubleshooting {category} issue with {assistant.provider} backend")
        click.echo(assistant.get_recommendation(issue, context))

        if log_resource:
            if not provider:
                raise click.UsageError("--logs requires --provider")
            entries = rig_ctx.cloud_manager.get_logs(
                provider, "gce_instance", log_resource, hours, cancel_token=rig_ctx.cancel_token
            )
            if not entries:
                click.echo(f"No log entries found for {log_resource}")
                return
            Console().print(build_log_table(entries, f"Logs for {log_resource} (last {hours}h)"))
