"""Shared state and error handling for rig commands.

The main group builds one RigContext per invocation and stores it in
``ctx.obj``; every command reads the CloudManager and settings from there.
"""

import functools
import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import click

from rig.ai_assistant import AIAssistant
from rig.cancellation import CancellationToken
from rig.cloud_manager import CloudManager
from rig.config_manager import RigConfig
from rig.exceptions import RigError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

EXIT_CANCELLED = 130


@dataclass
class RigContext:
    """Per-invocation state handed to commands."""

    cloud_manager: CloudManager | None = None
    config: RigConfig = field(default_factory=RigConfig)
    config_path: str | None = None
    management_enabled: bool = False
    ai_assistant: AIAssistant | None = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    def assistant(self) -> AIAssistant:
        """The AI assistant, built on first use.

        RIG_AI_PROVIDER / AI_PROVIDER take precedence over the config file.
        """
        if self.ai_assistant is None:
            from_env = os.getenv("RIG_AI_PROVIDER") or os.getenv("AI_PROVIDER")
            self.ai_assistant = AIAssistant(provider=None if from_env else self.config.ai_provider)
        return self.ai_assistant


def get_rig_context(ctx: click.Context) -> RigContext:
    return ctx.find_object(RigContext)


def parse_settings(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated ``--set key=value`` options.

    Raises:
        click.BadParameter: A pair has no "="
    """
    settings = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"Expected key=value, got: {pair}", param_hint="--set")
        settings[key.strip()] = value.strip()
    return settings


def handle_errors(func: F) -> F:
    """Report RigError and friends as ``Error: ...`` and exit with their code."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except RigError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(e.exit_code)
        except NotImplementedError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        except KeyboardInterrupt:
            click.echo("\nCancelled", err=True)
            sys.exit(EXIT_CANCELLED)

    return wrapper  # type: ignore


__all__ = ["RigContext", "get_rig_context", "handle_errors", "parse_settings"]
