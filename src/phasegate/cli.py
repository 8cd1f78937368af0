"""Click command line interface for phasegate."""

from __future__ import annotations

import json
import sys
from dataclasses import replace
from typing import Any

import click

from phasegate.bootstrap import build_router
from phasegate.config import load_settings
from phasegate.domain.exceptions import ConfigurationError
from phasegate.domain.models import ALL_STAGES, DEFAULT_STAGES, CommandResult
from phasegate.infrastructure.console import (
    ConsoleApprovalPrompt,
    print_error,
    print_result,
    render_overview,
    render_status,
)


def _emit(obj: dict[str, Any], result: CommandResult) -> None:
    """Print a result and exit non-zero on failure."""
    if obj["json"]:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success and result.command == "status":
        render_status(result.phase_id, result.data)
    elif result.success and result.command == "overview":
        render_overview(result.data)
    else:
        print_result(result)
    if not result.success:
        sys.exit(1)


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True),
    help="Path to a settings JSON file",
)
@click.option(
    "--state-root",
    default=None,
    type=click.Path(),
    help="Directory holding one folder per phase (overrides settings)",
)
@click.option(
    "--log-file",
    default=None,
    type=click.Path(),
    help="Path to log file",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose (DEBUG) logging to console",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the raw result envelope as JSON",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: str | None,
    state_root: str | None,
    log_file: str | None,
    verbose: bool,
    as_json: bool,
) -> None:
    """Phase document-approval workflow."""
    overrides: dict[str, Any] = {}
    if state_root:
        overrides["state_root"] = state_root
    if log_file:
        overrides["log_file"] = log_file
    if verbose:
        overrides["verbose"] = True

    try:
        settings = replace(load_settings(config_path), **overrides)
        router = build_router(settings, configure_logging=True)
    except ConfigurationError as e:
        print_error(str(e), "Check the settings file and the generator options.")
        sys.exit(1)

    ctx.obj = {"router": router, "json": as_json}


def _stage_command(stage: str) -> click.Command:
    help_text = f"Generate the {stage} document of a phase."
    if stage not in DEFAULT_STAGES:
        help_text += " Needs include_prd in the settings file."

    @click.command(name=stage, help=help_text)
    @click.argument("phase_id")
    @click.option(
        "--changes",
        default=None,
        help="Describe a change to an existing document; precedents must be approved",
    )
    @click.option(
        "--new-task",
        "new_tasks",
        multiple=True,
        help="Task proposed by this change; repeat for several",
    )
    @click.pass_obj
    def command(
        obj: dict[str, Any], phase_id: str, changes: str | None, new_tasks: tuple[str, ...]
    ) -> None:
        if stage not in obj["router"].commands:
            raise click.UsageError(f"Stage '{stage}' is not part of the configured workflow")
        options: dict[str, Any] = {}
        if changes:
            options["changes"] = changes
        if new_tasks:
            options["new_tasks"] = list(new_tasks)
        _emit(obj, obj["router"].handle(stage, phase_id, options))

    return command


for _stage in ALL_STAGES:
    main.add_command(_stage_command(_stage))


@main.command()
@click.argument("phase_id")
@click.pass_obj
def status(obj: dict[str, Any], phase_id: str) -> None:
    """Show stage progress of a phase."""
    _emit(obj, obj["router"].handle("status", phase_id))


@main.command()
@click.argument("phase_id")
@click.argument("stage")
@click.option("--reject", is_flag=True, help="Reject instead of approve")
@click.option("--approver", default="user", help="Who signs off (default: user)")
@click.option("--comments", default="", help="Free-form comments")
@click.option(
    "--feedback",
    multiple=True,
    help="Rejection reason; repeat for several",
)
@click.option(
    "-i",
    "--interactive",
    is_flag=True,
    help="Ask for the decision at the terminal",
)
@click.pass_obj
def approve(
    obj: dict[str, Any],
    phase_id: str,
    stage: str,
    reject: bool,
    approver: str,
    comments: str,
    feedback: tuple[str, ...],
    interactive: bool,
) -> None:
    """Approve or reject a generated stage."""
    router = obj["router"]
    if interactive:
        report = router.handle("status", phase_id)
        artifact = None
        if report.success:
            rows = [row for row in report.data["stages"] if row["stage"] == stage]
            artifact = rows[0]["artifact"] if rows else None
        try:
            decision = ConsoleApprovalPrompt(approver_id=approver).ask(phase_id, stage, artifact)
        except KeyboardInterrupt:
            click.echo("\n\nInterrupted by user.")
            sys.exit(130)
        reject = not decision.approved
        comments = decision.comments
        feedback = decision.feedback

    result = router.approve(
        phase_id,
        stage,
        approved=not reject,
        approver_id=approver,
        comments=comments,
        feedback=feedback,
    )
    _emit(obj, result)


@main.command()
@click.argument("phase_id")
@click.argument("dependencies", nargs=-1)
@click.pass_obj
def depends(obj: dict[str, Any], phase_id: str, dependencies: tuple[str, ...]) -> None:
    """Declare the phases PHASE_ID depends on (replaces the current list)."""
    _emit(obj, obj["router"].declare_dependencies(phase_id, dependencies))


@main.command()
@click.argument("phase_id")
@click.argument("description")
@click.pass_obj
def block(obj: dict[str, Any], phase_id: str, description: str) -> None:
    """Record a manual blocker on a phase."""
    _emit(obj, obj["router"].record_blocker(phase_id, description))


@main.command()
@click.argument("phase_id")
@click.pass_obj
def unblock(obj: dict[str, Any], phase_id: str) -> None:
    """Clear the manual blockers of a phase."""
    _emit(obj, obj["router"].clear_blockers(phase_id))


@main.command()
@click.pass_obj
def dashboard(obj: dict[str, Any]) -> None:
    """Show every phase with the status of each stage."""
    _emit(obj, obj["router"].overview())


if __name__ == "__main__":
    main()
