"""Rich table builders shared by the CLI commands and the interactive session."""

from rich.markup import escape
from rich.table import Table

from rig.models.resource_models import CostEstimate, LogEntry, MetricsResult, Resource

STATUS_STYLES = {
    "running": "green",
    "available": "green",
    "active": "green",
    "runnable": "green",
    "created": "green",
    "pending": "yellow",
    "provisioning": "yellow",
    "staging": "yellow",
    "creating": "yellow",
    "launching": "yellow",
    "stopping": "yellow",
    "terminating": "yellow",
    "stopped": "red",
    "terminated": "red",
    "suspended": "red",
    "failed": "red",
}

# Extra attributes shown as a column when any resource carries them
EXTRA_COLUMNS = (
    ("public_ip", "Public IP"),
    ("private_ip", "Private IP"),
    ("ip_address", "IP"),
    ("tier", "Tier"),
    ("instance_class", "Class"),
    ("cidr_block", "CIDR"),
)


def format_status(status: str) -> str:
    """Status wrapped in rich markup for its color."""
    if not status:
        return "-"
    style = STATUS_STYLES.get(status.lower())
    text = escape(status)
    return f"[{style}]{text}[/{style}]" if style else text


def build_resource_table(resources: list[Resource], title: str) -> Table:
    """Build a rich table for a resource listing."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Region", style="dim")

    extras = [
        (key, label) for key, label in EXTRA_COLUMNS if any(r.extra.get(key) for r in resources)
    ]
    for _, label in extras:
        table.add_column(label, style="dim yellow")

    for resource in resources:
        row = [
            escape(resource.name),
            escape(resource.id) if resource.id != resource.name else "",
            escape(resource.type) or "-",
            format_status(resource.status),
            escape(resource.region) or "-",
        ]
        row.extend(escape(resource.extra.get(key, "")) or "-" for key, _ in extras)
        table.add_row(*row)
    return table


def build_cost_table(estimate: CostEstimate, title: str = "Estimated Monthly Cost") -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Resource", style="cyan")
    table.add_column("Type")
    table.add_column("Monthly", justify="right", style="yellow")

    for item in estimate.breakdown:
        table.add_row(escape(item.resource) or "-", escape(item.type) or "-", f"${item.estimated_cost}")
    table.add_section()
    table.add_row("[bold]Total[/bold]", "", f"[bold]${estimate.monthly_cost} {estimate.currency}[/bold]")
    return table


def build_metrics_table(result: MetricsResult) -> Table:
    title = f"Metrics for {result.resource_id}"
    if result.synthetic:
        title += " (synthetic: backend unavailable)"
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    for name, value in result.metrics.items():
        shown = f"{value:.2f}" if isinstance(value, (int, float)) else escape(str(value))
        table.add_row(escape(name), shown)
    return table


def build_log_table(entries: list[LogEntry], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Message")

    for entry in entries:
        severity = entry.severity.upper()
        style = "red" if severity in ("ERROR", "CRITICAL", "ALERT", "EMERGENCY") else None
        shown = f"[{style}]{severity}[/{style}]" if style else severity
        table.add_row(escape(entry.timestamp), shown, escape(entry.message))
    return table


def build_snapshot_table(manifests: list[tuple[str, dict]], title: str = "Inventory snapshots") -> Table:
    """Build a table of saved inventory snapshots as (file name, manifest) pairs."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Snapshot", style="cyan", no_wrap=True)
    table.add_column("Provider")
    table.add_column("Region", style="dim")
    table.add_column("Created", style="dim")
    table.add_column("Resources", justify="right")

    for name, manifest in manifests:
        count = sum(len(items) for items in manifest.get("resources", {}).values())
        table.add_row(
            escape(name),
            escape(str(manifest.get("provider", ""))) or "-",
            escape(str(manifest.get("region") or "")) or "-",
            escape(str(manifest.get("created_at", ""))) or "-",
            str(count),
        )
    return table


__all__ = [
    "build_cost_table",
    "build_log_table",
    "build_metrics_table",
    "build_resource_table",
    "build_snapshot_table",
    "format_status",
]
