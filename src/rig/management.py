"""Management-mode gate for mutating operations.

rig starts every session read-only. Create and delete go through
require_management_mode, both in the interactive session and in the
non-interactive ``rig cloud <provider> create|delete`` commands.
"""

import logging
import os

from rig.config_manager import RigConfig, parse_bool
from rig.exceptions import ConfigError, ReadOnlyModeError

logger = logging.getLogger(__name__)

MUTATING_OPERATIONS = frozenset({"create", "delete"})

READ_ONLY_MESSAGE = (
    "Cannot {operation} resources in read-only mode. "
    "Enable management mode first (--enable-management or RIG_MANAGEMENT_ENABLED=true)."
)


def require_management_mode(enabled: bool, operation: str) -> None:
    """Refuse a mutating operation while management mode is off.

    Raises:
        ReadOnlyModeError: operation mutates and management is disabled
    """
    if operation in MUTATING_OPERATIONS and not enabled:
        logger.debug(f"Rejected {operation} in read-only mode")
        raise ReadOnlyModeError(READ_ONLY_MESSAGE.format(operation=operation))


def resolve_management_enabled(flag: bool, config: RigConfig | None = None) -> bool:
    """Management mode for a non-interactive invocation.

    The --enable-management flag wins, then RIG_MANAGEMENT_ENABLED, then the
    config file. An unparseable environment value is ignored with a warning.
    """
    if flag:
        return True

    env_value = os.getenv("RIG_MANAGEMENT_ENABLED")
    if env_value:
        try:
            return parse_bool(env_value)
        except ConfigError:
            logger.warning(f"Ignoring invalid RIG_MANAGEMENT_ENABLED value: {env_value}")

    return bool(config and config.management_enabled)


__all__ = ["READ_ONLY_MESSAGE", "require_management_mode", "resolve_management_enabled"]
