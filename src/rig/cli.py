"""rig CLI entry point.

Builds one RigContext per invocation (configuration, CloudManager,
management mode) and registers the command modules.
"""

import logging
import os
import sys

import click

from rig import __version__
from rig.click_group import RigGroup
from rig.cloud_manager import CloudManager, default_factories
from rig.commands import (
    register_cloud_commands,
    register_config_commands,
    register_cost_command,
    register_interactive_command,
    register_troubleshoot_command,
)
from rig.commands._context import RigContext
from rig.config_manager import ConfigManager, RigConfig
from rig.exceptions import ConfigError
from rig.management import resolve_management_enabled

logger = logging.getLogger(__name__)


def _log_level(verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    name = os.getenv("RIG_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def build_cloud_manager(config: RigConfig) -> CloudManager:
    """CloudManager for the built-in providers; environment wins over config."""
    return CloudManager(
        default_factories(
            gcp_project=(
                os.getenv("GCP_PROJECT_ID") or os.getenv("GOOGLE_CLOUD_PROJECT") or config.gcp_project
            ),
            gcp_region=os.getenv("GCP_REGION") or config.default_region,
            aws_region=(
                os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or config.aws_region
            ),
        )
    )


@click.group(
    cls=RigGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", help="Config file path", type=click.Path())
@click.option(
    "--enable-management",
    is_flag=True,
    help="Allow create and delete operations (default: read-only)",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None, enable_management: bool) -> None:
    """rig - multi-cloud infrastructure assistant.

    Lists, creates and deletes resources on AWS, GCP and Azure through one
    interface, and offers AI-assisted troubleshooting.

    \b
    COMMANDS:
        cloud         List and manage resources of one provider
        cost          Estimate monthly costs
        troubleshoot  Get advice for an infrastructure issue
        interactive   Guided menu session (alias: i)
        config        Show or change configuration

    \b
    EXAMPLES:
        $ rig cloud gcp
        $ rig cloud aws --type storage
        $ rig --enable-management cloud gcp create instance --name web-1
        $ rig cost estimate gcp e2-micro e2-medium
        $ rig troubleshoot --issue "connection timeout"
        $ rig i

    \b
    CONFIGURATION:
        Config file: ~/.rig/config.toml (or --config / RIG_CONFIG)
        Credentials: AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY, gcloud auth login
        AI backend:  RIG_AI_PROVIDER=anthropic|openai|ollama|local
    """
    logging.basicConfig(level=_log_level(verbose), format="%(message)s")

    rig_ctx = ctx.obj if isinstance(ctx.obj, RigContext) else None
    try:
        if rig_ctx is None or config_path:
            config = ConfigManager.load_config(config_path)
        else:
            config = rig_ctx.config
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)

    if rig_ctx is None:
        rig_ctx = RigContext()
        ctx.obj = rig_ctx
    rig_ctx.config = config
    rig_ctx.config_path = config_path
    if rig_ctx.cloud_manager is None:
        rig_ctx.cloud_manager = build_cloud_manager(config)
    rig_ctx.management_enabled = rig_ctx.management_enabled or resolve_management_enabled(
        enable_management, config
    )
    logger.debug(f"Management mode: {'enabled' if rig_ctx.management_enabled else 'read-only'}")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


register_cloud_commands(main)
register_cost_command(main)
register_troubleshoot_command(main)
register_interactive_command(main)
register_config_commands(main)


if __name__ == "__main__":
    main()


__all__ = ["build_cloud_manager", "main"]
