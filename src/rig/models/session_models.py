"""
Session Data Models

State of an interactive rig session.

Philosophy:
- Immutable values: a transition produces a new SessionContext
- Zero dependencies: no imports from other rig modules
- The session commits a new context only after a transition succeeded
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    """Menus of the interactive session."""

    MAIN_MENU = "main_menu"
    CLOUD_BROWSE = "cloud_browse"
    TROUBLESHOOT = "troubleshoot"
    MONITOR = "monitor"
    BACKUP = "backup"
    SECURITY = "security"
    COST = "cost"
    GENERATE = "generate"
    MANAGEMENT_TOGGLE = "management_toggle"
    EXIT = "exit"


@dataclass(frozen=True)
class SessionContext:
    """Mutable-by-replacement state of an interactive run.

    Attributes:
        selected_provider: Provider name (aws, gcp, azure) or None
        region: Active region or zone
        environment: dev, staging or production
        management_enabled: Whether create/delete operations are allowed
        navigation_stack: Prior states, most recent last
    """

    selected_provider: str | None = None
    region: str | None = None
    environment: str = "dev"
    management_enabled: bool = False
    navigation_stack: tuple[SessionState, ...] = ()

    def push(self, state: SessionState) -> "SessionContext":
        return replace(self, navigation_stack=self.navigation_stack + (state,))

    def pop(self) -> tuple["SessionContext", SessionState]:
        """Return the context without its top state, and that state.

        An empty stack pops to MAIN_MENU.
        """
        if not self.navigation_stack:
            return self, SessionState.MAIN_MENU
        return (
            replace(self, navigation_stack=self.navigation_stack[:-1]),
            self.navigation_stack[-1],
        )

    def with_provider(self, provider: str, region: str | None) -> "SessionContext":
        return replace(self, selected_provider=provider, region=region)

    def with_management(self, enabled: bool) -> "SessionContext":
        return replace(self, management_enabled=enabled)

    def with_environment(self, environment: str) -> "SessionContext":
        return replace(self, environment=environment)

    def ai_context(self, resource_type: str | None = None) -> dict[str, Any]:
        """Context handed to the AI assistant."""
        return {
            "provider": self.selected_provider,
            "environment": self.environment,
            "resource_type": resource_type,
        }


__all__ = ["SessionContext", "SessionState"]
