"""Interactive session: a menu-driven state machine over CloudManager.

Each SessionState has a handler that shows one menu, performs the chosen
action and returns the next state. The SessionContext is immutable; a handler
builds a new context and commits it only after the action it belongs to has
finished successfully, so an interrupt mid-prompt leaves the previous context
in place.

Create and delete go through require_management_mode, which keeps the
session read-only until management mode is explicitly confirmed.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import click

from rig.ai_assistant import AIAssistant
from rig.cancellation import CancellationToken
from rig.cli_helpers import (
    build_cost_table,
    build_log_table,
    build_metrics_table,
    build_resource_table,
    build_snapshot_table,
)
from rig.cloud_manager import CloudManager
from rig.config_manager import ENVIRONMENTS, ConfigManager
from rig.exceptions import ConfigError, OperationCancelledError, RigError
from rig.interaction_handler import InteractionHandler
from rig.management import require_management_mode
from rig.models.resource_models import ResourceType
from rig.models.session_models import SessionContext, SessionState

logger = logging.getLogger(__name__)

# (key, label, target state) in display order
MAIN_MENU_TRANSITIONS: tuple[tuple[str, str, SessionState], ...] = (
    ("browse", "Browse cloud resources", SessionState.CLOUD_BROWSE),
    ("troubleshoot", "Troubleshoot an issue", SessionState.TROUBLESHOOT),
    ("monitor", "Monitor resources", SessionState.MONITOR),
    ("backup", "Backup operations", SessionState.BACKUP),
    ("security", "Security audit", SessionState.SECURITY),
    ("cost", "Analyze costs", SessionState.COST),
    ("generate", "Generate a script", SessionState.GENERATE),
    ("management", "Toggle management mode", SessionState.MANAGEMENT_TOGGLE),
    ("exit", "Exit", SessionState.EXIT),
)

BACK = ("back", "Back")

RESOURCE_LABELS = {
    "instances": "Compute instances",
    "storage": "Storage buckets",
    "network": "Networks",
    "database": "Databases",
    "loadbalancer": "Load balancers",
}

CREATABLE_TYPES = {
    "gcp": ("instance", "bucket", "network"),
    "aws": ("instance", "bucket"),
}
DELETABLE_TYPES = ("instance", "bucket")

SCRIPT_LANGUAGES = (("bash", "Bash"), ("python", "Python"))

Action = Callable[[], None]


class InteractiveSession:
    """Guided session over a CloudManager.

    Args:
        cloud_manager: Provider router
        handler: Prompts and output (CLIInteractionHandler in the terminal)
        ai_assistant: Troubleshooting and script backend
        context: Starting context (default: read-only, no provider)
        cancel_token: Cancelled on interrupt and passed to every provider call
        backup_dir: Where inventory snapshots are written (default: ~/.rig/backups)
    """

    def __init__(
        self,
        cloud_manager: CloudManager,
        handler: InteractionHandler,
        ai_assistant: AIAssistant | None = None,
        context: SessionContext | None = None,
        cancel_token: CancellationToken | None = None,
        backup_dir: Path | None = None,
    ):
        self.cloud_manager = cloud_manager
        self.handler = handler
        self.ai_assistant = ai_assistant or AIAssistant()
        self.context = context or SessionContext()
        self.cancel_token = cancel_token or CancellationToken()
        self.backup_dir = backup_dir or ConfigManager.DEFAULT_CONFIG_DIR / "backups"
        self.state = SessionState.MAIN_MENU
        self._state_handlers: dict[SessionState, Callable[[], SessionState]] = {
            SessionState.MAIN_MENU: self._main_menu,
            SessionState.CLOUD_BROWSE: self._cloud_browse,
            SessionState.TROUBLESHOOT: self._troubleshoot,
            SessionState.MONITOR: self._monitor,
            SessionState.BACKUP: self._backup,
            SessionState.SECURITY: self._security,
            SessionState.COST: self._cost,
            SessionState.GENERATE: self._generate,
            SessionState.MANAGEMENT_TOGGLE: self._management_toggle,
        }

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self) -> SessionContext:
        """Run until Exit or an interrupt. Returns the final context."""
        try:
            while self.state != SessionState.EXIT:
                self.step()
        except (KeyboardInterrupt, click.Abort):
            self.cancel_token.cancel("Session interrupted")
            self.handler.show_warning("Session interrupted")
        except OperationCancelledError as e:
            self.handler.show_warning(str(e))
        self.state = SessionState.EXIT
        logger.debug("Interactive session ended")
        return self.context

    def step(self) -> SessionState:
        """Run the handler of the current state once and move to the next state."""
        self.state = self._state_handlers[self.state]()
        return self.state

    def _commit(self, context: SessionContext) -> None:
        self.context = context

    def _back(self) -> SessionState:
        context, previous = self.context.pop()
        self._commit(context)
        return previous

    def _submenu(self, title: str, actions: list[tuple[str, str, Action]]) -> SessionState:
        """Show a menu of actions plus Back; run the chosen action."""
        choices = [(key, label) for key, label, _ in actions] + [BACK]
        index = self.handler.prompt_choice(title, choices)
        if index == len(actions):
            return self._back()
        self._run_action(actions[index][2])
        return self.state

    def _run_action(self, action: Action) -> None:
        try:
            action()
        except OperationCancelledError:
            raise
        except (RigError, NotImplementedError) as e:
            logger.debug(f"Action failed: {e}")
            self.handler.show_error(str(e))

    # ------------------------------------------------------------------
    # Main menu and navigation
    # ------------------------------------------------------------------

    def _status_line(self) -> str:
        provider = self.context.selected_provider or "no provider"
        if self.context.region:
            provider += f"/{self.context.region}"
        mode = "MANAGEMENT" if self.context.management_enabled else "READ-ONLY"
        return f"[{provider}] [{self.context.environment}] [{mode}]"

    def _main_menu(self) -> SessionState:
        choices = [(key, label) for key, label, _ in MAIN_MENU_TRANSITIONS]
        index = self.handler.prompt_choice(f"rig {self._status_line()}", choices)
        target = MAIN_MENU_TRANSITIONS[index][2]
        if target != SessionState.EXIT:
            self._commit(self.context.push(SessionState.MAIN_MENU))
        return target

    # ------------------------------------------------------------------
    # Provider selection
    # ------------------------------------------------------------------

    def select_provider(self) -> None:
        """Prompt for provider and region, initialize it, then commit."""
        providers = self.cloud_manager.supported_providers
        index = self.handler.prompt_choice(
            "Select cloud provider:", [(name, name.upper()) for name in providers]
        )
        name = providers[index]
        default_region = self.cloud_manager.get_provider(name).config.region or None
        region = self.handler.prompt_text("Region", default=default_region) or None

        self.cloud_manager.initialize_provider(name, region, cancel_token=self.cancel_token)
        self._commit(self.context.with_provider(name, region))
        self.handler.show_info(f"Using {name} ({region or 'default region'})")

    def _require_provider(self) -> str:
        if not self.context.selected_provider:
            self.select_provider()
        return self.context.selected_provider

    def _choose_resource_type(self, types: tuple[str, ...], message: str) -> str:
        index = self.handler.prompt_choice(
            message, [(t, RESOURCE_LABELS.get(t, t.capitalize())) for t in types]
        )
        return types[index]

    # ------------------------------------------------------------------
    # CLOUD_BROWSE
    # ------------------------------------------------------------------

    def _cloud_browse(self) -> SessionState:
        gated = "" if self.context.management_enabled else " (management mode required)"
        return self._submenu(
            f"Cloud resources {self._status_line()}",
            [
                ("provider", "Select provider and region", self.select_provider),
                ("list", "List resources", self.list_resources),
                ("environment", "Set environment", self.select_environment),
                ("create", f"Create a resource{gated}", self.create_resource),
                ("delete", f"Delete a resource{gated}", self.delete_resource),
            ],
        )

    def list_resources(self) -> None:
        provider = self._require_provider()
        resource_type = self._choose_resource_type(ResourceType.values(), "Resource type:")
        resources = self.cloud_manager.list_resources(
            provider, resource_type, self.context.region, cancel_token=self.cancel_token
        )
        if not resources:
            self.handler.show_info(f"No {RESOURCE_LABELS[resource_type].lower()} found")
            return
        self.handler.show_table(
            build_resource_table(resources, f"{provider.upper()} {RESOURCE_LABELS[resource_type]}")
        )

    def select_environment(self) -> None:
        index = self.handler.prompt_choice(
            "Select environment:", [(env, env.capitalize()) for env in ENVIRONMENTS]
        )
        self._commit(self.context.with_environment(ENVIRONMENTS[index]))

    def create_resource(self, resource_type: str | None = None) -> None:
        """Gated create: validate, confirm, then create."""
        require_management_mode(self.context.management_enabled, "create")
        provider = self._require_provider()
        types = CREATABLE_TYPES.get(provider, ("instance",))
        resource_type = resource_type or self._choose_resource_type(types, "Create:")
        self._create(provider, resource_type, self.handler.prompt_text(f"{resource_type} name"))

    def _create(self, provider: str, resource_type: str, name: str) -> None:
        config = {
            "type": resource_type,
            "name": name,
            "region": self.context.region or self.cloud_manager.get_provider(provider).config.region,
            "environment": self.context.environment,
        }
        config = {key: value for key, value in config.items() if value}

        validation = self.cloud_manager.validate_config(provider, config)
        for warning in validation.warnings:
            self.handler.show_warning(warning)
        if not validation.valid:
            for error in validation.errors:
                self.handler.show_error(error)
            return

        if not self.handler.confirm(f"Create {resource_type} '{name}' on {provider}?", default=False):
            self.handler.show_info("Cancelled")
            return

        result = self.cloud_manager.create_resource(
            provider, resource_type, config, cancel_token=self.cancel_token
        )
        self.handler.show_info(f"{resource_type} {result.name or result.resource_id}: {result.status}")

    def delete_resource(self) -> None:
        """Gated delete with an explicit confirmation."""
        require_management_mode(self.context.management_enabled, "delete")
        provider = self._require_provider()
        resource_type = self._choose_resource_type(DELETABLE_TYPES, "Delete:")
        resource_id = self.handler.prompt_text(f"{resource_type} name or ID")

        options = {}
        if provider == "gcp" and resource_type == "instance":
            zone = self.handler.prompt_text("Zone (blank for default)", default="")
            if zone:
                options["zone"] = zone

        if not self.handler.confirm(
            f"Delete {resource_type} '{resource_id}'? This cannot be undone.", default=False
        ):
            self.handler.show_info("Cancelled")
            return

        result = self.cloud_manager.delete_resource(
            provider, resource_type, resource_id, cancel_token=self.cancel_token, **options
        )
        self.handler.show_info(f"{resource_type} {result.resource_id}: {result.status}")

    # ------------------------------------------------------------------
    # TROUBLESHOOT / GENERATE
    # ------------------------------------------------------------------

    def _troubleshoot(self) -> SessionState:
        return self._submenu("Troubleshoot", [("ask", "Describe an issue", self.troubleshoot)])

    def troubleshoot(self) -> None:
        issue = self.handler.prompt_text("Describe the issue")
        if not issue.strip():
            self.handler.show_warning("No issue described")
            return
        context = self.context.ai_context()
        context["category"] = self.ai_assistant.categorize_issue(issue)
        self.handler.show_text(self.ai_assistant.get_recommendation(issue, context))

    def _generate(self) -> SessionState:
        return self._submenu("Generate", [("script", "Generate a script", self.generate_script)])

    def generate_script(self) -> None:
        task = self.handler.prompt_text("Task (e.g. backup-database, health-check)")
        index = self.handler.prompt_choice("Language:", list(SCRIPT_LANGUAGES))
        script = self.ai_assistant.generate_script(
            task, self.context.selected_provider, SCRIPT_LANGUAGES[index][0]
        )
        self.handler.show_text(script)

    # ------------------------------------------------------------------
    # MONITOR
    # ------------------------------------------------------------------

    def _monitor(self) -> SessionState:
        return self._submenu(
            "Monitor",
            [
                ("metrics", "Resource metrics", self.show_metrics),
                ("logs", "Recent logs", self.show_logs),
                ("health", "AI backend health", self.show_ai_health),
            ],
        )

    def show_metrics(self) -> None:
        provider = self._require_provider()
        resource_type = self._choose_resource_type(("instances", "database"), "Resource type:")
        resource_id = self.handler.prompt_text("Resource ID")
        result = self.cloud_manager.get_metrics(
            provider, resource_type, resource_id, cancel_token=self.cancel_token
        )
        if result.synthetic:
            self.handler.show_warning("Metrics backend unavailable; values are placeholders")
        self.handler.show_table(build_metrics_table(result))

    def show_logs(self) -> None:
        provider = self._require_provider()
        resource_name = self.handler.prompt_text("Resource name or ID")
        entries = self.cloud_manager.get_logs(
            provider, "gce_instance", resource_name, cancel_token=self.cancel_token
        )
        if not entries:
            self.handler.show_info("No log entries found")
            return
        self.handler.show_table(build_log_table(entries, f"Logs for {resource_name}"))

    def show_ai_health(self) -> None:
        if self.ai_assistant.check_health():
            self.handler.show_info(f"AI backend '{self.ai_assistant.provider}' is available")
        else:
            self.handler.show_warning(
                f"AI backend '{self.ai_assistant.provider}' is unavailable; "
                "local recommendations will be used"
            )

    # ------------------------------------------------------------------
    # BACKUP
    # ------------------------------------------------------------------

    def _backup(self) -> SessionState:
        gated = "" if self.context.management_enabled else " (management mode required)"
        return self._submenu(
            "Backup",
            [
                ("list", "List backup buckets", self.list_backups),
                ("create", f"Create a backup bucket{gated}", self.create_backup_bucket),
                ("snapshot", "Snapshot resource inventory", self.snapshot_inventory),
                ("snapshots", "List inventory snapshots", self.list_snapshots),
            ],
        )

    def list_backups(self) -> None:
        provider = self._require_provider()
        buckets = self.cloud_manager.list_resources(
            provider, "storage", self.context.region, cancel_token=self.cancel_token
        )
        if not buckets:
            self.handler.show_info("No storage buckets found")
            return
        self.handler.show_table(build_resource_table(buckets, "Storage buckets"))

    def create_backup_bucket(self) -> None:
        require_management_mode(self.context.management_enabled, "create")
        provider = self._require_provider()
        suggested = (
            f"rig-backup-{self.context.environment}-"
            f"{datetime.now(timezone.utc).strftime('%Y%m%d')}"
        )
        name = self.handler.prompt_text("Bucket name", default=suggested)
        self._create(provider, "bucket", name)

    def snapshot_inventory(self) -> None:
        """Write every listed resource of the provider to a JSON manifest."""
        provider = self._require_provider()
        listings = self.cloud_manager.list_all_resources(
            provider, self.context.region, cancel_token=self.cancel_token
        )
        now = datetime.now(timezone.utc)
        manifest = {
            "provider": provider,
            "region": self.context.region,
            "environment": self.context.environment,
            "created_at": now.isoformat(),
            "resources": {
                listing.type: [resource.to_dict() for resource in listing.items]
                for listing in listings
            },
            "errors": {listing.type: listing.error for listing in listings if listing.error},
        }

        path = self.backup_dir / f"{provider}-{now.strftime('%Y%m%d-%H%M%S')}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(manifest, indent=2))
        except OSError as e:
            raise ConfigError(f"Failed to write snapshot {path}: {e}") from e

        total = sum(len(listing.items) for listing in listings)
        logger.info(f"Wrote inventory snapshot {path}")
        self.handler.show_info(f"Saved {total} resource(s) to {path}")

    def list_snapshots(self) -> None:
        manifests = []
        paths = sorted(self.backup_dir.glob("*.json")) if self.backup_dir.is_dir() else []
        for path in paths:
            try:
                manifest = json.loads(path.read_text())
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable snapshot {path}: {e}")
                continue
            if isinstance(manifest, dict):
                manifests.append((path.name, manifest))
        if not manifests:
            self.handler.show_info(f"No inventory snapshots in {self.backup_dir}")
            return
        self.handler.show_table(build_snapshot_table(manifests))

    # ------------------------------------------------------------------
    # SECURITY / COST
    # ------------------------------------------------------------------

    def _security(self) -> SessionState:
        return self._submenu("Security", [("audit", "Run security audit", self.security_audit)])

    def security_audit(self) -> None:
        provider = self._require_provider()
        instances = self.cloud_manager.list_resources(
            provider, "instances", self.context.region, cancel_token=self.cancel_token
        )
        buckets = self.cloud_manager.list_resources(
            provider, "storage", self.context.region, cancel_token=self.cancel_token
        )

        findings = [
            f"Instance {instance.name} has a public IP address ({instance.extra['public_ip']})"
            for instance in instances
            if instance.extra.get("public_ip")
        ]
        self.handler.show_info(
            f"Audited {len(instances)} instance(s) and {len(buckets)} bucket(s)"
        )
        if not findings:
            self.handler.show_info("No issues found")
        for finding in findings:
            self.handler.show_warning(finding)

    def _cost(self) -> SessionState:
        return self._submenu("Costs", [("estimate", "Estimate monthly cost", self.estimate_costs)])

    def estimate_costs(self) -> None:
        provider = self._require_provider()
        instances = self.cloud_manager.list_resources(
            provider, "instances", self.context.region, cancel_token=self.cancel_token
        )
        if not instances:
            self.handler.show_info("No instances found to estimate")
            return
        estimate = self.cloud_manager.estimate_cost(provider, instances)
        self.handler.show_table(build_cost_table(estimate))

    # ------------------------------------------------------------------
    # MANAGEMENT_TOGGLE
    # ------------------------------------------------------------------

    def _management_toggle(self) -> SessionState:
        if self.context.management_enabled:
            self._commit(self.context.with_management(False))
            self.handler.show_info("Management mode disabled (read-only)")
        elif self.handler.confirm(
            "Enable management mode? Create and delete will modify real infrastructure.",
            default=False,
        ):
            self._commit(self.context.with_management(True))
            self.handler.show_warning("Management mode enabled")
        else:
            self.handler.show_info("Still in read-only mode")
        return self._back()


__all__ = ["MAIN_MENU_TRANSITIONS", "InteractiveSession"]
