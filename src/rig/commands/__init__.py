"""Command groups for rig CLI."""

from rig.commands.cloud import register_cloud_commands
from rig.commands.config import register_config_commands
from rig.commands.cost import register_cost_command
from rig.commands.interactive import register_interactive_command
from rig.commands.troubleshoot import register_troubleshoot_command

__all__ = [
    "register_cloud_commands",
    "register_config_commands",
    "register_cost_command",
    "register_interactive_command",
    "register_troubleshoot_command",
]
