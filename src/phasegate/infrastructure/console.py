"""
Rich console adapters: status and overview rendering, human approval prompts.
"""

from collections.abc import Mapping
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from phasegate.domain.models import ApprovalDecision, CommandResult

_STATUS_STYLES = {
    "approved": "green",
    "needs_revision": "red",
    "pending_approval": "yellow",
    "not_started": "dim",
}


def render_status(
    phase_id: str, report: Mapping[str, Any], console: Console | None = None
) -> None:
    """Print a status report as a header panel plus a stage table."""
    console = console or Console()
    progress = report["progress"]

    header = Text(f"{phase_id}: {report['phase_title']}", style="bold blue")
    header.append(
        f"\n{progress['completed']}/{progress['total']} stages approved "
        f"({progress['percentage']}%)",
        style="dim",
    )
    header.append(f"\nNext action: {report['next_action']}", style="cyan")
    console.print(Panel(header, expand=False))

    table = Table(show_header=True, box=None)
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Iter", justify="right")
    table.add_column("Artifact", style="magenta")
    table.add_column("Notes", style="yellow")

    for row in report["stages"]:
        style = _STATUS_STYLES.get(row["status"], "")
        notes = []
        if row["needs_revalidation"]:
            notes.append("re-validate")
        if row["feedback"] and row["status"] == "needs_revision":
            notes.append("; ".join(row["feedback"]))
        table.add_row(
            row["stage"],
            Text(row["status"], style=style),
            str(row["iteration"]),
            row["artifact"] or "-",
            ", ".join(notes),
        )
    console.print(table)

    for blocker in report["blockers"]:
        console.print(f"[red]Blocker ({blocker['type']}):[/red] {blocker['description']}")


def render_overview(overview: Mapping[str, Any], console: Console | None = None) -> None:
    """Print one row per phase with the status of each stage."""
    console = console or Console()
    if not overview["phases"]:
        console.print("[dim]No phases yet.[/dim]")
        return

    table = Table(show_header=True, box=None)
    table.add_column("Phase", style="cyan")
    table.add_column("Title")
    for stage in overview["stages"]:
        table.add_column(stage)
    table.add_column("Progress", justify="right")
    table.add_column("Next action", style="cyan")

    for row in overview["phases"]:
        if "error" in row:
            blanks = [""] * len(overview["stages"])
            table.add_row(
                row["phase"], Text(row["error_kind"], style="red"), *blanks, "-", row["error"]
            )
            continue
        cells = []
        for stage in overview["stages"]:
            status = row["stages"].get(stage, "-")
            cells.append(Text(status, style=_STATUS_STYLES.get(status, "")))
        progress = row["progress"]
        action = row["next_action"]
        if row["blockers"]:
            action = f"{action} ({row['blockers']} blocker(s))"
        table.add_row(
            row["phase"],
            row["phase_title"],
            *cells,
            f"{progress['completed']}/{progress['total']}",
            action,
        )
    console.print(table)


def print_error(message: str, hint: str | None = None, console: Console | None = None) -> None:
    """Print formatted error message to stderr."""
    console = console or Console(stderr=True)
    content = Text(f"ERROR: {message}", style="bold red")
    if hint:
        content.append(f"\n\nHint: {hint}", style="yellow")
    console.print(Panel(content, title="Error", border_style="red"))


def print_result(result: CommandResult, console: Console | None = None) -> None:
    """Print the outcome of a stage, approval, dependency or blocker command."""
    if not result.success:
        print_error(
            f"{result.error_kind}: {result.error}",
            hint="\n".join(result.suggestions) or None,
            console=console,
        )
        return

    console = console or Console()
    data = result.data
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key in ("stage", "artifact", "status", "iteration", "next_iteration", "next_action"):
        if data.get(key) is not None:
            table.add_row(key, str(data[key]))
    updated = data.get("cascade", {}).get("updated")
    if updated:
        table.add_row("re-validate", ", ".join(updated))
    dependencies = data.get("dependencies", {})
    if isinstance(dependencies, dict) and dependencies.get("missing"):
        table.add_row("blocked by", ", ".join(dependencies["missing"]))
    elif isinstance(dependencies, list):
        table.add_row("dependencies", ", ".join(dependencies) or "-")
    if "audit" in data:
        table.add_row("tasks audit", data["audit"]["summary"])
    if "cleared" in data:
        table.add_row("cleared", str(data["cleared"]))
    for blocker in data.get("blockers", ()):
        table.add_row(f"blocker ({blocker['type']})", blocker["description"])
    console.print(
        Panel(table, title=f"{result.command} {result.phase_id}", border_style="green")
    )


class ConsoleApprovalPrompt:
    """
    Asks a human at the terminal to approve or reject a stage.

    This implementation uses synchronous CLI prompts.
    """

    def __init__(self, console: Console | None = None, approver_id: str = "user"):
        self.console = console or Console()
        self.approver_id = approver_id

    def ask(self, phase_id: str, stage: str, artifact_ref: str | None = None) -> ApprovalDecision:
        """
        Prompt for a decision on one stage.

        Returns:
            ApprovalDecision; rejections carry the entered reasons as feedback
        """
        self.console.print(f"\n[bold yellow]=== APPROVAL: {phase_id} / {stage} ===[/bold yellow]")
        if artifact_ref:
            self.console.print(f"[dim]Artifact: {artifact_ref}[/dim]")

        decision = Prompt.ask(f"[bold]Approve {stage}?[/bold]", choices=["y", "n"])
        if decision == "y":
            comments = Prompt.ask("[bold]Comments[/bold]", default="")
            return ApprovalDecision(
                approved=True, approver_id=self.approver_id, comments=comments
            )

        reasons = Prompt.ask("[bold]Rejection reasons (separate with ';')[/bold]")
        feedback = tuple(r.strip() for r in reasons.split(";") if r.strip())
        return ApprovalDecision(
            approved=False,
            approver_id=self.approver_id,
            comments=reasons,
            feedback=feedback,
        )
