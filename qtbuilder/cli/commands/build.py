"""Build command: run the enabled build matrix."""

import json
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from qtbuilder.cli.app import AppContext
from qtbuilder.cli.decorators import handle_errors
from qtbuilder.cli.helpers import (
    get_console,
    print_app_log_entry,
    print_error_message,
    print_warning_message,
)
from qtbuilder.logs.app_log import AppLogEntry, Severity
from qtbuilder.models.build import JobStatus, RunResult
from qtbuilder.orchestrator import (
    BuildOrchestrator,
    CellOutputEvent,
    LogAppendedEvent,
    create_build_orchestrator,
)


logger = logging.getLogger(__name__)

CANCELLED_EXIT_CODE = 130
JOIN_POLL_SECONDS = 0.5

_STATUS_STYLES = {
    JobStatus.SUCCEEDED: "green",
    JobStatus.FAILED: "red",
    JobStatus.TERMINATED: "yellow",
}


def exit_code_for(result: RunResult | None) -> int:
    """Process exit status of the CLI for a finished run."""
    if result is None:
        return 1
    state = result.state
    if state.succeeded:
        return 0
    if state.cancelled:
        return CANCELLED_EXIT_CODE
    code = state.code or 1
    return code if 1 <= code <= 255 else 1


def _wait_for_completion(orchestrator: BuildOrchestrator, console: Console) -> None:
    """Join the worker; Ctrl-C cancels the run but never abandons it."""
    while orchestrator.is_running:
        try:
            orchestrator.join(JOIN_POLL_SECONDS)
        except KeyboardInterrupt:
            if orchestrator.state.running:
                console.print(
                    "Cancelling build, waiting for the current step to stop ...",
                    style="warning",
                )
                orchestrator.cancel()
            else:
                console.print("Still waiting for the build to stop ...", style="warning")


def _print_summary(result: RunResult, console: Console) -> None:
    table = Table(title="Build Matrix Results", show_header=True, header_style="bold cyan")
    table.add_column("Cell", style="cyan", no_wrap=True)
    table.add_column("Status", style="bold")
    table.add_column("Exit code", justify="right")
    table.add_column("Duration", justify="right", style="dim")
    for outcome in result.outcomes:
        style = _STATUS_STYLES[outcome.status]
        table.add_row(
            outcome.cell.name,
            f"[{style}]{outcome.status.value}[/{style}]",
            str(outcome.exit_code),
            f"{outcome.duration:.1f}s",
        )
    if result.outcomes:
        console.print(table)

    if result.state.succeeded:
        border = "green"
    elif result.state.cancelled:
        border = "yellow"
    else:
        border = "red"
    lines = [result.summary, f"Application log: {result.app_log_path}"]
    if not result.state.succeeded:
        lines.append(f"Build transcript: {result.build_log_path}")
    console.print(Panel("\n".join(lines), title=str(result.state), border_style=border))

    failed = [o for o in result.outcomes if o.status is JobStatus.FAILED]
    if failed and failed[-1].excerpt:
        console.print(f"Last output of {failed[-1].cell.name}:", style="muted")
        for line in failed[-1].excerpt:
            console.print(f"  {line}", markup=False, highlight=False)


@handle_errors
def build(
    ctx: typer.Context,
    show_output: Annotated[
        bool,
        typer.Option("--show-output", help="Echo raw build output to the terminal"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("-q", "--quiet", help="Only print the final summary"),
    ] = False,
    json_output: Annotated[
        bool, typer.Option("--json", help="Print the run result as JSON")
    ] = False,
) -> None:
    """Run every enabled cell of the build matrix, one after another.

    \b
    Press Ctrl-C to cancel: the running build step is terminated and the
    scratch volume released before the command exits.

    \b
    Exit codes:
        0    all cells succeeded
        130  the run was cancelled
        N    the failure code of the run (1 if outside 1..255)
    """
    app_ctx: AppContext = ctx.obj
    console = get_console()
    orchestrator = create_build_orchestrator(app_ctx.user_config)

    if not quiet and not json_output:

        def on_log(event: LogAppendedEvent) -> None:
            if event.entry.severity is Severity.PROCESS and show_output:
                return
            print_app_log_entry(event.entry, console)

        orchestrator.subscribe(LogAppendedEvent, on_log)

    if show_output and not json_output:

        def on_output(event: CellOutputEvent) -> None:
            console.print(
                f"[{event.cell.name}] {event.line}", markup=False, highlight=False
            )

        orchestrator.subscribe(CellOutputEvent, on_output)

    orchestrator.announce()
    task = orchestrator.start()
    if task is None:
        warnings = [
            entry
            for entry in orchestrator.app_log.entries
            if entry.severity is Severity.WARNING
        ]
        orchestrator.shutdown()
        print_error_message(_describe(warnings[-1]) if warnings else "Build not started")
        raise typer.Exit(1)

    _wait_for_completion(orchestrator, console)
    result = orchestrator.last_result
    orchestrator.shutdown()

    if result is None:
        print_warning_message("Build ended without a result")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_summary(result, console)

    code = exit_code_for(result)
    if code:
        raise typer.Exit(code)


def _describe(entry: AppLogEntry) -> str:
    return f"{entry.message} {entry.detail}".strip()


def register_commands(app: typer.Typer) -> None:
    """Register the build command with the main app."""
    app.command(name="build")(build)
